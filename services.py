"""
REST clients for the rental marketplace backend.

Each service wraps one resource family (auth, properties, favorites,
applications, payments, contracts). Every call either returns the decoded JSON body
or raises ApiError; nothing is retried automatically. The one exception
is the favorites service, which falls back to the session's local cache
so the UI never blocks on it.
"""

import json
import logging
import os
import re
from contextlib import ExitStack
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Optional

import requests

from config import APISettings
from contracts import (CONTRACT_DOCUMENT_TYPES, SIGNATURE_TYPES, Contract, ContractPage,
                       ContractPayment, contract_from_backend, payment_from_backend)
from models import Listing, ListingDraft, draft_to_payload, listing_from_backend
from session import SessionStore
from uploads import DOCUMENT_ACCEPT, IMAGE_ACCEPT, DEFAULT_MAX_BYTES, validate_upload

logger = logging.getLogger(__name__)


# ── Errors ──────────────────────────────────────────────────────────────────

class ApiError(Exception):
    """The backend rejected a request or could not be reached."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status = status


class PaymentError(ApiError):
    """A payment could not be created; kind selects the user-facing message."""

    ALREADY_EXISTS = "already-exists"
    NOT_APPROVED = "not-approved"
    PRICING = "pricing"
    GENERIC = "generic"

    _MESSAGES = {
        ALREADY_EXISTS: (
            "Payment Already Exists",
            "A payment for this application has already been created. "
            "You can check your payment status in the dashboard.",
        ),
        NOT_APPROVED: (
            "Application Not Approved",
            "Payment can only be made for approved applications. Please wait for approval.",
        ),
        PRICING: (
            "Pricing Error",
            "There is an issue with the property pricing. Please contact the property owner.",
        ),
    }

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message, status)
        self.kind = classify_payment_error(message)
        self.title, self.description = self._MESSAGES.get(
            self.kind, ("Payment Error", message or "Failed to initialize payment")
        )

    @property
    def closes_modal(self) -> bool:
        """Nothing left to do when the payment already exists."""
        return self.kind == self.ALREADY_EXISTS


def classify_payment_error(message: str) -> str:
    text = (message or "").lower()
    if "payment for this type already exists" in text:
        return PaymentError.ALREADY_EXISTS
    if "not approved" in text:
        return PaymentError.NOT_APPROVED
    if "pricing" in text:
        return PaymentError.PRICING
    return PaymentError.GENERIC


# ── Base Service ────────────────────────────────────────────────────────────

class BaseService:
    """Shared HTTP plumbing: base URL, auth headers, error mapping."""

    name = "api"

    def __init__(self, session: SessionStore, settings: Optional[APISettings] = None,
                 http: Optional[requests.Session] = None):
        self.session = session
        self.settings = settings or APISettings()
        self.http = http or requests.Session()
        self.http.headers.update({"Accept": "application/json"})

    def _url(self, path: str) -> str:
        return f"{self.settings.base_url.strip().rstrip('/')}/{path.lstrip('/')}"

    def _send(self, method: str, path: str, default_error: str,
              multipart: bool = False, **kwargs) -> requests.Response:
        """Send a request and return the 2xx response, or raise ApiError."""
        headers = self.session.multipart_headers() if multipart else self.session.auth_headers()
        try:
            resp = self.http.request(
                method, self._url(path), headers=headers, timeout=self.settings.timeout, **kwargs
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"[{self.name}] Request failed: {e}")
            raise self._error(default_error, None) from e

        if not resp.ok:
            try:
                data = resp.json()
            except ValueError:
                data = None
            message = data.get("message") if isinstance(data, dict) else None
            logger.error(f"[{self.name}] HTTP {resp.status_code}: {message or default_error}")
            raise self._error(message or default_error, resp.status_code)
        return resp

    def _request(self, method: str, path: str, default_error: str,
                 multipart: bool = False, expect: type = dict, **kwargs):
        """Send a request and return the JSON body, or raise ApiError."""
        resp = self._send(method, path, default_error, multipart=multipart, **kwargs)
        try:
            data = resp.json()
        except ValueError:
            data = None
        if not isinstance(data, expect):
            logger.error(f"[{self.name}] Invalid JSON response")
            raise self._error(default_error, resp.status_code)
        return data

    def _error(self, message: str, status: Optional[int]) -> ApiError:
        return ApiError(message, status)


# ── Auth ────────────────────────────────────────────────────────────────────

class AuthService(BaseService):
    name = "auth"

    def login(self, email: str, password: str) -> dict:
        data = self._request("POST", "/auth/login", "Login failed",
                             json={"email": email, "password": password})
        self._start_session(data)
        return data

    def register(self, email: str, password: str, name: str, role: str = "tenant",
                 **extra) -> dict:
        payload = {"email": email, "password": password, "name": name, "role": role, **extra}
        data = self._request("POST", "/auth/register", "Registration failed", json=payload)
        self._start_session(data)
        return data

    def get_profile(self) -> dict:
        data = self._request("GET", "/auth/profile", "Failed to fetch profile")
        return (data.get("data") or {}).get("user", {})

    def update_profile(self, **profile) -> dict:
        data = self._request("PUT", "/auth/profile", "Failed to update profile",
                             json={"profile": profile})
        user = (data.get("data") or {}).get("user")
        if user and self.session.token:
            self.session.start(self.session.token, user)
        return data

    def logout(self) -> None:
        self.session.end()

    def _start_session(self, data: dict) -> None:
        token = (data.get("data") or {}).get("token")
        if token:
            self.session.start(token, (data.get("data") or {}).get("user"))


# ── Properties ──────────────────────────────────────────────────────────────

@dataclass
class SearchPage:
    listings: list = field(default_factory=list)
    current: int = 1
    pages: int = 1
    total: int = 0

    @property
    def has_more(self) -> bool:
        return self.current < self.pages


class PropertyService(BaseService):
    name = "properties"

    def search(self, params: Optional[dict] = None) -> SearchPage:
        """Search listings; params with value None are not sent."""
        query = {k: v for k, v in (params or {}).items() if v is not None}
        data = self._request("GET", "/properties", "Failed to search properties", params=query)

        body = data.get("data") or {}
        if not isinstance(body, dict):
            logger.error(f"[{self.name}] Unexpected response shape: {type(body).__name__}")
            raise ApiError("Failed to search properties")

        listings: list[Listing] = []
        for item in body.get("properties") or []:
            try:
                listings.append(listing_from_backend(item))
            except (AttributeError, TypeError, ValueError, KeyError) as e:
                logger.debug(f"[{self.name}] Skipping item: {e}")

        pagination = body.get("pagination") or {}
        try:
            page = SearchPage(
                listings=listings,
                current=int(pagination.get("current") or 1),
                pages=int(pagination.get("pages") or 1),
                total=int(pagination.get("total") or len(listings)),
            )
        except (AttributeError, TypeError, ValueError) as e:
            logger.error(f"[{self.name}] Bad pagination: {e}")
            raise ApiError("Failed to search properties") from e
        logger.info(f"[{self.name}] Fetched {len(listings)} listings (page {page.current}/{page.pages})")
        return page

    def get(self, property_id: str) -> dict:
        data = self._request("GET", f"/properties/{property_id}", "Failed to fetch property")
        return (data.get("data") or {}).get("property", {})

    def hoster_properties(self, page: int = 1, limit: int = 10,
                          status: Optional[str] = None) -> dict:
        params: dict[str, Any] = {"page": page, "limit": limit}
        if status:
            params["status"] = status
        return self._request("GET", "/properties/hoster/my-properties",
                             "Failed to fetch properties", params=params)

    def create(self, draft: ListingDraft, image_paths: Optional[list] = None,
               room_image_paths: Optional[dict] = None) -> dict:
        """
        Create a property as multipart form data.

        propertyData holds the JSON document; property photos go under
        'images' and each room's photos under 'roomImages_<room id>'.
        """
        image_paths = image_paths or []
        room_image_paths = room_image_paths or {}
        for path in image_paths + [p for paths in room_image_paths.values() for p in paths]:
            validate_upload(path, IMAGE_ACCEPT)

        with ExitStack() as stack:
            files = []
            for i, path in enumerate(image_paths):
                fh = stack.enter_context(open(path, "rb"))
                files.append(("images", (f"property-image-{i}{_ext(path)}", fh)))
            for room_id, paths in room_image_paths.items():
                for i, path in enumerate(paths):
                    fh = stack.enter_context(open(path, "rb"))
                    files.append((f"roomImages_{room_id}", (f"room-{room_id}-image-{i}{_ext(path)}", fh)))

            logger.info(f"[{self.name}] Creating property with {len(files)} image(s)")
            return self._request(
                "POST", "/properties", "Failed to create property", multipart=True,
                data={"propertyData": json.dumps(draft_to_payload(draft))},
                files=files or None,
            )

    def update(self, property_id: str, changes: dict) -> dict:
        return self._request("PUT", f"/properties/{property_id}", "Failed to update property",
                             json=changes)

    def delete(self, property_id: str) -> dict:
        return self._request("DELETE", f"/properties/{property_id}", "Failed to delete property")


def _ext(path: str) -> str:
    return os.path.splitext(path)[1] or ".jpg"


# ── Favorites ───────────────────────────────────────────────────────────────

_OBJECT_ID = re.compile(r"_id: new ObjectId\('([^']+)'\)")


def repair_favorite_ids(favorites: list) -> list[str]:
    """
    Some backend versions return whole documents stringified instead of ids.
    Pull the ObjectId out of those and drop anything that isn't one.
    """
    if not favorites or not isinstance(favorites[0], str) or "_id:" not in favorites[0]:
        return [str(f) for f in favorites]
    repaired = []
    for fav in favorites:
        match = _OBJECT_ID.search(fav)
        fav_id = match.group(1) if match else fav
        if len(fav_id) == 24:
            repaired.append(fav_id)
    return repaired


def _favorites_of(data: dict) -> Optional[list]:
    """The favorites list in a response, or None when the body doesn't carry one."""
    body = data.get("data") or {}
    favorites = body.get("favorites") if isinstance(body, dict) else None
    return favorites if isinstance(favorites, list) else None


class FavoriteService(BaseService):
    """Favorites with a transparent local-cache fallback."""

    name = "favorites"

    def all(self) -> list[str]:
        try:
            data = self._request("GET", "/favorites", "Failed to get favorites")
        except ApiError:
            cached = self.session.cached_favorites()
            logger.warning(f"[{self.name}] Using {len(cached)} cached favorites")
            return cached
        favorites = _favorites_of(data)
        if favorites is None:
            cached = self.session.cached_favorites()
            logger.warning(f"[{self.name}] No favorites in response, using {len(cached)} cached")
            return cached
        favorites = repair_favorite_ids(favorites)
        self.session.cache_favorites(favorites)
        return favorites

    def add(self, property_id: str) -> bool:
        try:
            data = self._request("POST", "/favorites", "Failed to add favorite",
                                 json={"propertyId": property_id})
        except ApiError:
            favorites = self.session.cached_favorites()
            if property_id not in favorites:
                favorites.append(property_id)
                self.session.cache_favorites(favorites)
            logger.warning(f"[{self.name}] Added {property_id} to local cache only")
            return True
        return self._accept(data)

    def remove(self, property_id: str) -> bool:
        try:
            data = self._request("DELETE", f"/favorites/{property_id}", "Failed to remove favorite")
        except ApiError:
            favorites = [f for f in self.session.cached_favorites() if f != property_id]
            self.session.cache_favorites(favorites)
            logger.warning(f"[{self.name}] Removed {property_id} from local cache only")
            return True
        return self._accept(data)

    def toggle(self, property_id: str) -> bool:
        if self.is_favorite(property_id):
            return self.remove(property_id)
        return self.add(property_id)

    def is_favorite(self, property_id: str) -> bool:
        return property_id in self.all()

    def _accept(self, data: dict) -> bool:
        if not data.get("success"):
            return False
        favorites = _favorites_of(data)
        if favorites is not None:
            self.session.cache_favorites(repair_favorite_ids(favorites))
        return True


# ── Applications ────────────────────────────────────────────────────────────

class ApplicationService(BaseService):
    name = "applications"

    def submit(self, application: dict) -> dict:
        """Submit a tenant profile; document fields hold already-uploaded URLs."""
        data = self._request("POST", "/applications", "Failed to submit application",
                             json=application)
        return (data.get("data") or {}).get("application", {})

    def mine(self, status: Optional[str] = None, page: Optional[int] = None,
             limit: Optional[int] = None) -> dict:
        params = {k: v for k, v in (("status", status), ("page", page), ("limit", limit)) if v}
        return self._request("GET", "/applications", "Failed to fetch applications", params=params)

    def get(self, application_id: str) -> dict:
        data = self._request("GET", f"/applications/{application_id}", "Failed to fetch application")
        return (data.get("data") or {}).get("application", {})

    def withdraw(self, application_id: str) -> dict:
        return self._request("DELETE", f"/applications/{application_id}",
                             "Failed to withdraw application")

    def upload_document(self, path: str, doc_type: str,
                        max_bytes: int = DEFAULT_MAX_BYTES) -> str:
        """Validate and upload one document; returns its URL."""
        if doc_type not in DOCUMENT_ACCEPT:
            raise ValueError(f"Unknown document type: {doc_type}")
        mime_type = validate_upload(path, DOCUMENT_ACCEPT[doc_type], max_bytes)

        with open(path, "rb") as fh:
            data = self._request(
                "POST", "/applications/upload-document", "Failed to upload document",
                multipart=True, data={"type": doc_type},
                files={"document": (os.path.basename(path), fh, mime_type)},
            )
        return (data.get("data") or {}).get("url", "")

    def hoster_applications(self, status: Optional[str] = None, page: Optional[int] = None,
                            limit: Optional[int] = None) -> dict:
        params = {k: v for k, v in (("status", status), ("page", page), ("limit", limit)) if v}
        return self._request("GET", "/applications/hoster", "Failed to fetch applications",
                             params=params)

    def update_status(self, application_id: str, status: str,
                      notes: Optional[str] = None) -> dict:
        payload = {"status": status}
        if notes:
            payload["reviewNotes"] = notes
        return self._request("PUT", f"/applications/{application_id}/status",
                             "Failed to update application status", json=payload)

    # Drafts

    def save_progress(self, property_id: str, step: int, completed_steps: list,
                      fields: dict) -> dict:
        payload = {"propertyId": property_id, "currentStep": step,
                   "completedSteps": list(completed_steps), **fields}
        data = self._request("POST", "/applications/draft/save", "Failed to save progress",
                             json=payload)
        return (data.get("data") or {}).get("draft", {})

    def get_progress(self, property_id: str) -> dict:
        data = self._request("GET", f"/applications/draft/property/{property_id}",
                             "Failed to load progress")
        return (data.get("data") or {}).get("draft", {})

    def delete_progress(self, property_id: str) -> dict:
        return self._request("DELETE", f"/applications/draft/property/{property_id}",
                             "Failed to delete progress")

    def submit_draft(self, property_id: str) -> dict:
        data = self._request("POST", f"/applications/draft/property/{property_id}/submit",
                             "Failed to submit application")
        return (data.get("data") or {}).get("application", {})


# ── Payments ────────────────────────────────────────────────────────────────

PAYMENT_TYPES = ("deposit", "first_month", "monthly_rent", "security_deposit")
ACTIVE_PAYMENT_STATUSES = ("pending", "processing", "succeeded")

_STATUS_TEXT = {
    "pending": "Pending Payment",
    "processing": "Processing",
    "succeeded": "Paid",
    "failed": "Failed",
    "canceled": "Canceled",
    "refunded": "Refunded",
}

_TYPE_TEXT = {
    "deposit": "Security Deposit",
    "first_month": "First Month Rent",
    "monthly_rent": "Monthly Rent",
    "security_deposit": "Security Deposit",
}


class PaymentService(BaseService):
    name = "payments"

    def create(self, application_id: str, payment_type: str, amount: int,
               currency: str = "usd", description: Optional[str] = None) -> dict:
        """Create a payment intent; returns {'payment': ..., 'clientSecret': ...}."""
        if not application_id:
            raise PaymentError("Application ID is missing")
        if payment_type not in PAYMENT_TYPES:
            raise ValueError(f"Unknown payment type: {payment_type}")

        payload: dict[str, Any] = {
            "applicationId": application_id,
            "paymentType": payment_type,
            "amount": amount,
            "currency": currency,
        }
        if description:
            payload["description"] = description
        try:
            data = self._request("POST", "/payments", "Failed to create payment", json=payload)
        except ApiError as e:
            raise PaymentError(e.message, e.status) from e
        return data.get("data") or {}

    def mine(self, status: Optional[str] = None, page: Optional[int] = None,
             limit: Optional[int] = None, role: Optional[str] = None) -> dict:
        params = {k: v for k, v in
                  (("status", status), ("page", page), ("limit", limit), ("role", role)) if v}
        return self._request("GET", "/payments", "Failed to fetch payments", params=params)

    def get(self, payment_id: str) -> dict:
        data = self._request("GET", f"/payments/{payment_id}", "Failed to fetch payment")
        return (data.get("data") or {}).get("payment", {})

    def cancel(self, payment_id: str) -> dict:
        return self._request("DELETE", f"/payments/{payment_id}", "Failed to cancel payment")

    def find_existing(self, application_id: str, payment_type: str) -> Optional[dict]:
        """An active payment of this type for the application, if any."""
        try:
            data = self.mine(limit=100)
        except ApiError as e:
            logger.error(f"[{self.name}] Error checking payment existence: {e}")
            return None
        for payment in (data.get("data") or {}).get("payments") or []:
            if not isinstance(payment, dict):
                continue
            if (payment.get("applicationId") == application_id
                    and payment.get("paymentType") == payment_type
                    and payment.get("status") in ACTIVE_PAYMENT_STATUSES):
                return payment
        return None

    @staticmethod
    def status_text(status: str) -> str:
        return _STATUS_TEXT.get(status, status)

    @staticmethod
    def type_text(payment_type: str) -> str:
        return _TYPE_TEXT.get(payment_type, payment_type.replace("_", " "))


# ── Contracts ───────────────────────────────────────────────────────────────

def _wire_value(value: Any) -> Any:
    return value.isoformat() if isinstance(value, date) else value


class ContractService(BaseService):
    """
    Lease contracts. Unlike the other resources these endpoints return the
    document itself rather than a {success, data} envelope.
    """

    name = "contracts"

    # CRUD

    def create(self, payload: dict) -> Contract:
        data = self._request("POST", "/contracts", "Failed to create contract",
                             json=_wire_payload(payload))
        return self._contract(data, "Failed to create contract")

    def get(self, contract_id: str) -> Contract:
        data = self._request("GET", f"/contracts/{contract_id}", "Failed to fetch contract")
        return self._contract(data, "Failed to fetch contract")

    def update(self, contract_id: str, changes: dict) -> Contract:
        data = self._request("PUT", f"/contracts/{contract_id}", "Failed to update contract",
                             json=_wire_payload(changes))
        return self._contract(data, "Failed to update contract")

    def delete(self, contract_id: str) -> None:
        self._send("DELETE", f"/contracts/{contract_id}", "Failed to delete contract")

    def search(self, **params) -> ContractPage:
        """Filter by status, propertyId, tenantId, hosterId, dates, page, limit, sortBy, sortOrder."""
        query = {k: _wire_value(v) for k, v in params.items() if v is not None}
        data = self._request("GET", "/contracts", "Failed to search contracts", params=query)

        contracts = []
        for item in data.get("contracts") or []:
            try:
                contracts.append(contract_from_backend(item))
            except (AttributeError, TypeError, ValueError) as e:
                logger.debug(f"[{self.name}] Skipping contract: {e}")
        return ContractPage(
            contracts=contracts,
            total=int(data.get("total") or len(contracts)),
            page=int(data.get("page") or 1),
            limit=int(data.get("limit") or len(contracts)),
            total_pages=int(data.get("totalPages") or 1),
        )

    # Lifecycle

    def sign(self, contract_id: str, signature_type: str, guarantor_id: Optional[str] = None,
             signature: Optional[str] = None) -> Contract:
        if signature_type not in SIGNATURE_TYPES:
            raise ValueError(f"Unknown signature type: {signature_type}")
        if signature_type == "guarantor" and not guarantor_id:
            raise ValueError("A guarantor signature needs the guarantor id")
        payload: dict[str, Any] = {"signatureType": signature_type}
        if guarantor_id:
            payload["guarantorId"] = guarantor_id
        if signature:
            payload["signature"] = signature
        data = self._request("POST", f"/contracts/{contract_id}/sign", "Failed to sign contract",
                             json=payload)
        return self._contract(data, "Failed to sign contract")

    def activate(self, contract_id: str) -> Contract:
        data = self._request("POST", f"/contracts/{contract_id}/activate",
                             "Failed to activate contract")
        return self._contract(data, "Failed to activate contract")

    def terminate(self, contract_id: str, reason: str) -> Contract:
        data = self._request("POST", f"/contracts/{contract_id}/terminate",
                             "Failed to terminate contract", json={"reason": reason})
        return self._contract(data, "Failed to terminate contract")

    def renew(self, contract_id: str, new_end_date: date,
              new_terms: Optional[dict] = None) -> Contract:
        payload: dict[str, Any] = {"newEndDate": new_end_date.isoformat()}
        if new_terms:
            payload["newTerms"] = new_terms
        data = self._request("POST", f"/contracts/{contract_id}/renew", "Failed to renew contract",
                             json=payload)
        return self._contract(data, "Failed to renew contract")

    # Payments

    def payments(self, contract_id: str) -> list[ContractPayment]:
        data = self._request("GET", f"/contracts/{contract_id}/payments",
                             "Failed to fetch payments", expect=list)
        return [payment_from_backend(p) for p in data if isinstance(p, dict)]

    def record_payment(self, contract_id: str, payment: dict) -> ContractPayment:
        data = self._request("POST", f"/contracts/{contract_id}/payments",
                             "Failed to record payment", json=_wire_payload(payment))
        return payment_from_backend(data)

    def update_payment(self, contract_id: str, payment_id: str, changes: dict) -> ContractPayment:
        data = self._request("PUT", f"/contracts/{contract_id}/payments/{payment_id}",
                             "Failed to update payment", json=_wire_payload(changes))
        return payment_from_backend(data)

    # Documents

    def upload_document(self, contract_id: str, path: str, doc_type: str,
                        max_bytes: int = DEFAULT_MAX_BYTES) -> dict:
        if doc_type not in CONTRACT_DOCUMENT_TYPES:
            raise ValueError(f"Unknown document type: {doc_type}")
        mime_type = validate_upload(path, None, max_bytes)

        with open(path, "rb") as fh:
            return self._request(
                "POST", f"/contracts/{contract_id}/documents", "Failed to upload document",
                multipart=True, data={"type": doc_type},
                files={"file": (os.path.basename(path), fh, mime_type)},
            )

    def delete_document(self, contract_id: str, document_id: str) -> None:
        self._send("DELETE", f"/contracts/{contract_id}/documents/{document_id}",
                   "Failed to delete document")

    def download_document(self, contract_id: str, document_id: str) -> bytes:
        return self._send("GET", f"/contracts/{contract_id}/documents/{document_id}/download",
                          "Failed to download document").content

    def pdf(self, contract_id: str) -> bytes:
        return self._send("GET", f"/contracts/{contract_id}/pdf", "Failed to generate PDF").content

    # Templates, events, reporting

    def templates(self) -> list:
        return self._request("GET", "/contracts/templates", "Failed to fetch templates", expect=list)

    def template(self, template_id: str) -> dict:
        return self._request("GET", f"/contracts/templates/{template_id}", "Failed to fetch template")

    def events(self, contract_id: str) -> list:
        return self._request("GET", f"/contracts/{contract_id}/events",
                             "Failed to fetch contract events", expect=list)

    def analytics(self, date_from: Optional[date] = None, date_to: Optional[date] = None) -> dict:
        params = {k: v.isoformat() for k, v in (("dateFrom", date_from), ("dateTo", date_to)) if v}
        return self._request("GET", "/contracts/analytics", "Failed to fetch analytics",
                             params=params)

    def validate(self, payload: dict) -> list[str]:
        """Server-side validation; returns the error list, empty when valid."""
        data = self._request("POST", "/contracts/validate", "Failed to validate contract",
                             json=_wire_payload(payload))
        return [] if data.get("valid") else list(data.get("errors") or [])

    # Notifications

    def notifications(self) -> list:
        return self._request("GET", "/contracts/notifications", "Failed to fetch notifications",
                             expect=list)

    def mark_notification_read(self, notification_id: str) -> None:
        self._send("PUT", f"/contracts/notifications/{notification_id}/read",
                   "Failed to mark notification as read")

    def _contract(self, data: dict, default_error: str) -> Contract:
        try:
            return contract_from_backend(data)
        except (AttributeError, TypeError, ValueError) as e:
            logger.error(f"[{self.name}] Bad contract document: {e}")
            raise ApiError(default_error) from e


def _wire_payload(payload: dict) -> dict:
    return {k: _wire_value(v) for k, v in payload.items()}
