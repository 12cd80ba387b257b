"""
Lease contracts between a tenant and a hoster, optionally backed by
guarantors.

A contract is drafted, sent out for signatures, activated once every party
has signed, and ends by expiring or being terminated. Expired or nearly
expired contracts can be renewed with a new end date.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Optional

logger = logging.getLogger(__name__)

MIN_CONTRACT_DAYS = 30
EXPIRING_SOON_DAYS = 30

SIGNATURE_TYPES = ("tenant", "hoster", "guarantor")
CONTRACT_DOCUMENT_TYPES = ("contract", "addendum", "invoice", "receipt", "inspection", "other")


class ContractStatus(str, Enum):
    DRAFT = "draft"
    PENDING_SIGNATURES = "pending_signatures"
    ACTIVE = "active"
    EXPIRED = "expired"
    TERMINATED = "terminated"
    CANCELLED = "cancelled"


class PaymentFrequency(str, Enum):
    MONTHLY = "monthly"
    BIWEEKLY = "biweekly"
    WEEKLY = "weekly"


_PAYMENTS_PER_YEAR = {
    PaymentFrequency.WEEKLY: 52,
    PaymentFrequency.BIWEEKLY: 26,
    PaymentFrequency.MONTHLY: 12,
}

_STATUS_TEXT = {
    ContractStatus.DRAFT: "Draft",
    ContractStatus.PENDING_SIGNATURES: "Pending Signatures",
    ContractStatus.ACTIVE: "Active",
    ContractStatus.EXPIRED: "Expired",
    ContractStatus.TERMINATED: "Terminated",
    ContractStatus.CANCELLED: "Cancelled",
}

_PAYMENT_STATUS_TEXT = {
    "paid": "Paid",
    "pending": "Pending",
    "overdue": "Overdue",
    "partial": "Partial",
}


# ── Records ─────────────────────────────────────────────────────────────────

@dataclass
class Signatures:
    tenant: bool = False
    hoster: bool = False
    guarantors: dict = field(default_factory=dict)   # guarantor id -> signed

    @property
    def all_signed(self) -> bool:
        return self.tenant and self.hoster and all(self.guarantors.values())


@dataclass
class ContractPayment:
    id: str
    amount: int
    due_date: Optional[date]
    status: str = "pending"              # pending | paid | overdue | partial
    type: str = "rent"
    paid_date: Optional[date] = None
    description: str = ""


@dataclass
class Contract:
    id: str
    property_id: str
    start_date: date
    end_date: date
    rent_amount: int = 0
    deposit_amount: int = 0
    payment_frequency: PaymentFrequency = PaymentFrequency.MONTHLY
    status: ContractStatus = ContractStatus.DRAFT
    property_title: str = ""
    tenant_id: str = ""
    hoster_id: str = ""
    guarantor_ids: list = field(default_factory=list)
    signatures: Signatures = field(default_factory=Signatures)
    payments: list = field(default_factory=list)
    termination_reason: Optional[str] = None


@dataclass
class ContractPage:
    contracts: list = field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = 10
    total_pages: int = 1


# ── Backend conversion ──────────────────────────────────────────────────────

def parse_date(value: Any) -> Optional[date]:
    if not value:
        return None
    if isinstance(value, date):
        return value
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00")).date()
    except ValueError:
        logger.debug(f"Unparseable date: {value!r}")
        return None


def _party_id(party: Any) -> str:
    if isinstance(party, dict):
        return str(party.get("id") or party.get("_id") or "")
    return str(party or "")


def payment_from_backend(item: dict) -> ContractPayment:
    return ContractPayment(
        id=str(item.get("id") or item.get("_id") or ""),
        amount=int(item.get("amount") or 0),
        due_date=parse_date(item.get("dueDate")),
        status=item.get("status") or "pending",
        type=item.get("type") or "rent",
        paid_date=parse_date(item.get("paidDate")),
        description=item.get("description") or "",
    )


def contract_from_backend(item: dict) -> Contract:
    """Build a Contract from the backend document. Raises ValueError without dates."""
    start, end = parse_date(item.get("startDate")), parse_date(item.get("endDate"))
    if start is None or end is None:
        raise ValueError(f"Contract {item.get('id')} has no start or end date")

    terms = item.get("terms") or {}
    sigs = item.get("signatures") or {}
    guarantors = [_party_id(g) for g in item.get("guarantors") or []]
    guarantor_sigs = sigs.get("guarantorsSigned") or {}

    try:
        frequency = PaymentFrequency(terms.get("paymentFrequency") or "monthly")
    except ValueError:
        frequency = PaymentFrequency.MONTHLY

    return Contract(
        id=str(item.get("id") or item.get("_id") or ""),
        property_id=str(item.get("propertyId") or ""),
        property_title=item.get("propertyTitle") or "",
        start_date=start,
        end_date=end,
        rent_amount=int(terms.get("rentAmount") or 0),
        deposit_amount=int(terms.get("depositAmount") or 0),
        payment_frequency=frequency,
        status=ContractStatus(item.get("status") or "draft"),
        tenant_id=_party_id(item.get("tenant")),
        hoster_id=_party_id(item.get("hoster")),
        guarantor_ids=guarantors,
        signatures=Signatures(
            tenant=bool(sigs.get("tenantSigned")),
            hoster=bool(sigs.get("hosterSigned")),
            guarantors={
                gid: bool((guarantor_sigs.get(gid) or {}).get("signed")) for gid in guarantors
            },
        ),
        payments=[payment_from_backend(p) for p in item.get("payments") or []],
        termination_reason=item.get("terminationReason"),
    )


# ── Lifecycle helpers ───────────────────────────────────────────────────────

def status_text(status: ContractStatus) -> str:
    return _STATUS_TEXT.get(status, str(status))


def payment_status_text(status: str) -> str:
    return _PAYMENT_STATUS_TEXT.get(status, status)


def signature_progress(contract: Contract) -> tuple[int, int]:
    """(signed, required): tenant and hoster plus one per guarantor."""
    sigs = contract.signatures
    required = 2 + len(contract.guarantor_ids)
    signed = int(sigs.tenant) + int(sigs.hoster) + sum(
        1 for gid in contract.guarantor_ids if sigs.guarantors.get(gid)
    )
    return signed, required


def is_expiring_soon(contract: Contract, today: Optional[date] = None,
                     days: int = EXPIRING_SOON_DAYS) -> bool:
    today = today or date.today()
    remaining = (contract.end_date - today).days
    return contract.status == ContractStatus.ACTIVE and 0 < remaining <= days


def has_overdue_payments(contract: Contract, today: Optional[date] = None) -> bool:
    today = today or date.today()
    return any(
        p.status == "overdue" or (p.status == "pending" and p.due_date and p.due_date < today)
        for p in contract.payments
    )


def next_payment_due(contract: Contract) -> Optional[ContractPayment]:
    pending = [p for p in contract.payments if p.status == "pending" and p.due_date]
    return min(pending, key=lambda p: p.due_date) if pending else None


def validate_contract_dates(start: date, end: date, today: Optional[date] = None) -> Optional[str]:
    """The first problem with a start/end pair, or None when it is usable."""
    today = today or date.today()
    if start >= end:
        return "End date must be after the start date"
    if end <= today:
        return "End date must be in the future"
    if (end - start).days < MIN_CONTRACT_DAYS:
        return f"Contracts must last at least {MIN_CONTRACT_DAYS} days"
    return None


def contract_duration(start: date, end: date) -> str:
    """Human-readable length using 30-day months: '1 year and 2 months'."""
    days = (end - start).days
    months = days // 30
    years = months // 12
    if years:
        text = f"{years} year{'s' if years > 1 else ''}"
        rest = months % 12
        if rest:
            text += f" and {rest} month{'s' if rest > 1 else ''}"
        return text
    if months:
        return f"{months} month{'s' if months > 1 else ''}"
    return f"{days} day{'s' if days != 1 else ''}"


def total_contract_value(contract: Contract) -> int:
    days = (contract.end_date - contract.start_date).days
    per_year = _PAYMENTS_PER_YEAR[contract.payment_frequency]
    payments = math.ceil(days * per_year / 365)
    return payments * contract.rent_amount


def renewal_window_open(contract: Contract, today: Optional[date] = None,
                        days: int = EXPIRING_SOON_DAYS) -> bool:
    """Active contracts can be renewed once they end within `days`."""
    today = today or date.today()
    return contract.end_date <= today + timedelta(days=days)
