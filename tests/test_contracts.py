from dataclasses import replace
from datetime import date

import pytest
import requests

from config import APISettings
from contracts import (Contract, ContractPayment, ContractStatus, PaymentFrequency, Signatures,
                       contract_duration, contract_from_backend, has_overdue_payments,
                       is_expiring_soon, next_payment_due, parse_date, signature_progress,
                       status_text, total_contract_value, validate_contract_dates)
from flows import ContractAction, ContractLifecycle, InvalidTransition
from services import ApiError, ContractService
from uploads import ValidationError

SETTINGS = APISettings(base_url="http://api.test/api", timeout=5)
TODAY = date(2024, 6, 1)

BACKEND_CONTRACT = {
    "id": "c1",
    "propertyId": "p1",
    "propertyTitle": "Depa Roma",
    "tenant": {"id": "t1", "name": "Ana"},
    "hoster": {"id": "h1", "name": "Luis"},
    "guarantors": [{"id": "g1"}, {"id": "g2"}],
    "startDate": "2024-01-01T00:00:00.000Z",
    "endDate": "2024-12-31T00:00:00.000Z",
    "status": "pending_signatures",
    "terms": {"rentAmount": 12000, "depositAmount": 12000, "paymentFrequency": "monthly"},
    "signatures": {
        "tenantSigned": True,
        "hosterSigned": False,
        "guarantorsSigned": {"g1": {"signed": True, "signedAt": "2024-01-02"}},
    },
    "payments": [
        {"id": "pay1", "amount": 12000, "dueDate": "2024-05-01", "status": "paid"},
        {"id": "pay2", "amount": 12000, "dueDate": "2024-07-01", "status": "pending"},
        {"id": "pay3", "amount": 12000, "dueDate": "2024-06-01", "status": "pending"},
    ],
}


def make_contract(status=ContractStatus.ACTIVE, start=date(2024, 1, 1), end=date(2024, 12, 31),
                  **fields) -> Contract:
    return Contract(id="c1", property_id="p1", start_date=start, end_date=end,
                    rent_amount=12000, status=status, **fields)


class TestConversion:
    def test_contract_from_backend(self):
        contract = contract_from_backend(BACKEND_CONTRACT)
        assert contract.status is ContractStatus.PENDING_SIGNATURES
        assert (contract.start_date, contract.end_date) == (date(2024, 1, 1), date(2024, 12, 31))
        assert (contract.tenant_id, contract.hoster_id) == ("t1", "h1")
        assert contract.guarantor_ids == ["g1", "g2"]
        assert contract.signatures.guarantors == {"g1": True, "g2": False}
        assert contract.rent_amount == 12000
        assert len(contract.payments) == 3

    def test_missing_dates_rejected(self):
        with pytest.raises(ValueError):
            contract_from_backend({"id": "c1", "startDate": "2024-01-01"})

    def test_unknown_frequency_reads_as_monthly(self):
        item = {**BACKEND_CONTRACT, "terms": {"paymentFrequency": "daily"}}
        assert contract_from_backend(item).payment_frequency is PaymentFrequency.MONTHLY

    def test_parse_date(self):
        assert parse_date("2024-03-05T10:00:00Z") == date(2024, 3, 5)
        assert parse_date("soon") is None
        assert parse_date(None) is None


class TestHelpers:
    def test_signature_progress(self):
        contract = contract_from_backend(BACKEND_CONTRACT)
        assert signature_progress(contract) == (2, 4)
        assert not contract.signatures.all_signed

    def test_all_signed_without_guarantors(self):
        assert Signatures(tenant=True, hoster=True).all_signed

    @pytest.mark.parametrize("start,end,message", [
        (date(2024, 7, 1), date(2024, 7, 1), "End date must be after the start date"),
        (date(2024, 1, 1), date(2024, 5, 1), "End date must be in the future"),
        (date(2024, 6, 10), date(2024, 7, 1), "Contracts must last at least 30 days"),
        (date(2024, 6, 10), date(2025, 6, 10), None),
    ])
    def test_validate_dates(self, start, end, message):
        assert validate_contract_dates(start, end, TODAY) == message

    @pytest.mark.parametrize("days,text", [
        (5, "5 days"),
        (1, "1 day"),
        (95, "3 months"),
        (365, "1 year"),
        (430, "1 year and 2 months"),
        (800, "2 years and 2 months"),
    ])
    def test_duration(self, days, text):
        start = date(2024, 1, 1)
        assert contract_duration(start, date.fromordinal(start.toordinal() + days)) == text

    def test_total_value_rounds_payments_up(self):
        contract = make_contract(end=date(2024, 7, 1))
        assert total_contract_value(contract) == 6 * 12000
        weekly = replace(contract, payment_frequency=PaymentFrequency.WEEKLY)
        assert total_contract_value(weekly) == 26 * 12000

    def test_expiring_soon_only_when_active(self):
        contract = make_contract(end=date(2024, 6, 20))
        assert is_expiring_soon(contract, TODAY)
        assert not is_expiring_soon(replace(contract, status=ContractStatus.DRAFT), TODAY)
        assert not is_expiring_soon(replace(contract, end_date=date(2024, 9, 1)), TODAY)
        assert not is_expiring_soon(replace(contract, end_date=TODAY), TODAY)

    def test_overdue_and_next_due(self):
        contract = contract_from_backend(BACKEND_CONTRACT)
        assert not has_overdue_payments(contract, TODAY)
        assert has_overdue_payments(contract, date(2024, 6, 2))
        assert next_payment_due(contract).id == "pay3"
        assert next_payment_due(make_contract()) is None

    def test_status_text(self):
        assert status_text(ContractStatus.PENDING_SIGNATURES) == "Pending Signatures"


def make_service(session, http):
    return ContractService(session, SETTINGS, http)


class TestContractService:
    def test_get_parses_document(self, session, http):
        http.queue(body=BACKEND_CONTRACT)
        contract = make_service(session, http).get("c1")
        assert contract.id == "c1"
        assert http.calls[0][:2] == ("GET", "http://api.test/api/contracts/c1")

    def test_document_without_dates_is_api_error(self, session, http):
        http.queue(body={"id": "c1"})
        with pytest.raises(ApiError, match="Failed to fetch contract"):
            make_service(session, http).get("c1")

    def test_search_sends_dates_and_skips_bad_items(self, session, http):
        http.queue(body={"contracts": [BACKEND_CONTRACT, "junk", {"id": "x"}],
                         "total": 3, "page": 1, "limit": 10, "totalPages": 1})
        page = make_service(session, http).search(status="active", startDate=date(2024, 1, 1),
                                                  tenantId=None)
        assert http.calls[0][2]["params"] == {"status": "active", "startDate": "2024-01-01"}
        assert [c.id for c in page.contracts] == ["c1"]
        assert page.total == 3

    def test_sign_payload(self, session, http):
        http.queue(body=BACKEND_CONTRACT)
        make_service(session, http).sign("c1", "guarantor", guarantor_id="g2", signature="sig")
        method, url, kwargs = http.calls[0]
        assert (method, url) == ("POST", "http://api.test/api/contracts/c1/sign")
        assert kwargs["json"] == {"signatureType": "guarantor", "guarantorId": "g2",
                                  "signature": "sig"}

    def test_guarantor_signature_needs_id(self, session, http):
        with pytest.raises(ValueError):
            make_service(session, http).sign("c1", "guarantor")
        with pytest.raises(ValueError):
            make_service(session, http).sign("c1", "witness")
        assert http.calls == []

    def test_renew_sends_iso_date(self, session, http):
        http.queue(body={**BACKEND_CONTRACT, "endDate": "2025-12-31"})
        contract = make_service(session, http).renew("c1", date(2025, 12, 31),
                                                     {"rentAmount": 13000})
        assert http.calls[0][2]["json"] == {"newEndDate": "2025-12-31",
                                            "newTerms": {"rentAmount": 13000}}
        assert contract.end_date == date(2025, 12, 31)

    def test_delete_accepts_empty_body(self, session, http):
        http.queue(status=204, raw="")
        assert make_service(session, http).delete("c1") is None
        assert http.calls[0][0] == "DELETE"

    def test_payments_list(self, session, http):
        http.queue(body=BACKEND_CONTRACT["payments"] + ["junk"])
        payments = make_service(session, http).payments("c1")
        assert [p.id for p in payments] == ["pay1", "pay2", "pay3"]
        assert isinstance(payments[0], ContractPayment)

    def test_list_endpoint_rejects_object(self, session, http):
        http.queue(body={"events": []})
        with pytest.raises(ApiError, match="Failed to fetch contract events"):
            make_service(session, http).events("c1")

    def test_download_returns_bytes(self, session, http):
        http.queue(content=b"%PDF-1.4")
        assert make_service(session, http).pdf("c1") == b"%PDF-1.4"

    def test_upload_rejects_unknown_type(self, session, http, tmp_path):
        doc = tmp_path / "lease.pdf"
        doc.write_bytes(b"%PDF-1.4")
        with pytest.raises(ValueError):
            make_service(session, http).upload_document("c1", str(doc), "photo")
        assert http.calls == []

    def test_validate_returns_errors(self, session, http):
        http.queue(body={"valid": False, "errors": ["Rent amount is required"]})
        http.queue(body={"valid": True})
        service = make_service(session, http)
        assert service.validate({"startDate": date(2024, 1, 1)}) == ["Rent amount is required"]
        assert http.calls[0][2]["json"] == {"startDate": "2024-01-01"}
        assert service.validate({}) == []

    def test_network_error(self, session, http):
        http.queue(error=requests.exceptions.ConnectionError("down"))
        with pytest.raises(ApiError, match="Failed to activate contract"):
            make_service(session, http).activate("c1")


class StubContracts:
    """Applies each call to the contract it was handed and records it."""

    def __init__(self, contract: Contract, error=None):
        self.contract = contract
        self.error = error
        self.calls = []

    def _apply(self, call, **changes):
        self.calls.append(call)
        if self.error:
            raise self.error
        self.contract = replace(self.contract, **changes)
        return self.contract

    def update(self, contract_id, changes):
        return self._apply(("update", changes), status=ContractStatus(changes["status"]))

    def sign(self, contract_id, signature_type, guarantor_id=None, signature=None):
        sigs = self.contract.signatures
        if signature_type == "guarantor":
            sigs = replace(sigs, guarantors={**sigs.guarantors, guarantor_id: True})
        else:
            sigs = replace(sigs, **{signature_type: True})
        return self._apply(("sign", signature_type, guarantor_id), signatures=sigs)

    def activate(self, contract_id):
        return self._apply(("activate",), status=ContractStatus.ACTIVE)

    def terminate(self, contract_id, reason):
        return self._apply(("terminate", reason), status=ContractStatus.TERMINATED,
                           termination_reason=reason)

    def renew(self, contract_id, new_end_date, new_terms=None):
        return self._apply(("renew", new_end_date, new_terms), status=ContractStatus.ACTIVE,
                           end_date=new_end_date)


def lifecycle(contract, error=None):
    service = StubContracts(contract, error)
    return ContractLifecycle(contract, service, today=lambda: TODAY), service


class TestContractLifecycle:
    def test_full_signing_path(self):
        flow, service = lifecycle(make_contract(ContractStatus.DRAFT, guarantor_ids=["g1"],
                                                signatures=Signatures(guarantors={"g1": False})))
        assert flow.available_actions() == [ContractAction.SEND_FOR_SIGNATURES]
        flow.send_for_signatures()
        assert service.calls[0] == ("update", {"status": "pending_signatures"})

        for party in ("tenant", "hoster"):
            assert flow.available_actions() == [ContractAction.SIGN]
            flow.sign(party)
        with pytest.raises(InvalidTransition):
            flow.activate()
        flow.sign("guarantor", guarantor_id="g1")

        assert flow.available_actions() == [ContractAction.ACTIVATE]
        assert flow.activate().status is ContractStatus.ACTIVE

    def test_unknown_guarantor_rejected(self):
        flow, service = lifecycle(make_contract(ContractStatus.PENDING_SIGNATURES,
                                                guarantor_ids=["g1"]))
        with pytest.raises(ValidationError):
            flow.sign("guarantor", guarantor_id="g9")
        assert service.calls == []

    def test_renew_only_near_the_end(self):
        flow, _ = lifecycle(make_contract(end=date(2024, 12, 31)))
        assert flow.available_actions() == [ContractAction.TERMINATE]
        with pytest.raises(InvalidTransition):
            flow.renew(date(2025, 12, 31))

        flow, _ = lifecycle(make_contract(end=date(2024, 6, 20)))
        assert flow.available_actions() == [ContractAction.RENEW, ContractAction.TERMINATE]
        renewed = flow.renew(date(2025, 6, 20), rent_amount=13000)
        assert renewed.end_date == date(2025, 6, 20)

    def test_renewal_must_extend(self):
        flow, service = lifecycle(make_contract(ContractStatus.EXPIRED, end=date(2024, 5, 1)))
        assert flow.available_actions() == [ContractAction.RENEW]
        with pytest.raises(ValidationError):
            flow.renew(date(2024, 5, 15))
        flow.renew(date(2025, 5, 1))
        assert service.calls == [("renew", date(2025, 5, 1), None)]

    def test_terminate_requires_reason(self):
        flow, service = lifecycle(make_contract())
        with pytest.raises(ValidationError):
            flow.terminate("   ")
        assert flow.terminate(" Tenant moved out ").termination_reason == "Tenant moved out"
        assert flow.available_actions() == []

    def test_ended_contracts_are_final(self):
        for status in (ContractStatus.TERMINATED, ContractStatus.CANCELLED):
            flow, _ = lifecycle(make_contract(status))
            assert flow.available_actions() == []
            with pytest.raises(InvalidTransition):
                flow.send_for_signatures()

    def test_backend_failure_keeps_contract(self):
        original = make_contract(ContractStatus.DRAFT)
        flow, _ = lifecycle(original, error=ApiError("Failed to update contract", 500))
        with pytest.raises(ApiError):
            flow.send_for_signatures()
        assert flow.contract is original
