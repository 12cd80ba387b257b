"""
Multi-step flows as explicit state machines.

ListingWizard walks a hoster through creating a property and then either
submits it for review or saves it as a draft. ApplicationProgress keeps a
tenant's half-finished rental application saved on the server, and
ContractLifecycle moves a signed lease from draft to active and beyond.
"""

import logging
import time
from dataclasses import replace
from datetime import date, datetime
from enum import Enum
from typing import Callable, Optional

from contracts import Contract, ContractStatus, renewal_window_open
from models import (Category, DraftRoom, ListingDraft, ListingStatus, RentalType,
                    renumber_rooms, room_title)
from search import Debouncer
from services import ApiError, ApplicationService, ContractService, PropertyService
from uploads import IMAGE_ACCEPT, ValidationError, validate_upload

logger = logging.getLogger(__name__)


class InvalidTransition(Exception):
    """The flow is not in a state that allows this action."""


# ── Listing creation wizard ─────────────────────────────────────────────────

class Step(str, Enum):
    PROPERTY_TYPE = "property-type"
    LOCATION = "location"
    PROPERTY_PHOTOS = "property-photos"
    FURNITURE = "furniture"
    ROOMS_QUANTITY = "rooms-quantity"
    ROOM_CHARACTERISTICS = "room-characteristics"
    ROOMMATES = "roommates"
    ADDITIONAL_INFO = "additional-info"
    PRICING = "pricing"
    CONTRACTS = "contracts"
    PROPERTY_DETAILS = "property-details"


FULL_UNIT_STEPS = (
    Step.PROPERTY_TYPE,
    Step.LOCATION,
    Step.PROPERTY_PHOTOS,
    Step.FURNITURE,
    Step.ADDITIONAL_INFO,
    Step.PRICING,
    Step.CONTRACTS,
    Step.PROPERTY_DETAILS,
)

ROOM_STEPS = (
    Step.PROPERTY_TYPE,
    Step.LOCATION,
    Step.PROPERTY_PHOTOS,
    Step.ROOMS_QUANTITY,
    Step.ROOM_CHARACTERISTICS,
    Step.ROOMMATES,
    Step.ADDITIONAL_INFO,
    Step.PRICING,
    Step.CONTRACTS,
    Step.PROPERTY_DETAILS,
)


class WizardState(str, Enum):
    EDITING = "editing"
    PHOTOS_UPLOADED = "photos-uploaded"
    SUBMITTED = "submitted"          # sent for review
    SAVED_DRAFT = "saved-draft"      # finish later
    FAILED = "failed"


_WIZARD_TRANSITIONS = {
    WizardState.EDITING: {WizardState.PHOTOS_UPLOADED, WizardState.SAVED_DRAFT, WizardState.FAILED},
    WizardState.PHOTOS_UPLOADED: {WizardState.PHOTOS_UPLOADED, WizardState.SUBMITTED,
                                  WizardState.SAVED_DRAFT, WizardState.FAILED},
    WizardState.FAILED: {WizardState.EDITING, WizardState.PHOTOS_UPLOADED},
    WizardState.SUBMITTED: set(),
    WizardState.SAVED_DRAFT: set(),
}


class ListingWizard:
    def __init__(self, draft: Optional[ListingDraft] = None, max_upload_bytes: Optional[int] = None):
        self.draft = draft or ListingDraft()
        self.state = WizardState.EDITING
        self.step = Step.PROPERTY_TYPE
        self.photo_paths: list[str] = []
        self.room_photo_paths: dict[str, list[str]] = {}
        self.max_upload_bytes = max_upload_bytes
        self.result: Optional[dict] = None

    # ── Navigation ─────────────────────────────────────────────────────────

    @property
    def steps(self) -> tuple:
        return ROOM_STEPS if self.draft.category == Category.SINGLE_ROOM else FULL_UNIT_STEPS

    @property
    def progress(self) -> float:
        return (self.steps.index(self.step) + 1) / len(self.steps)

    @property
    def is_last_step(self) -> bool:
        return self.step == self.steps[-1]

    def next(self) -> Step:
        self._require_open()
        i = self.steps.index(self.step)
        if i + 1 < len(self.steps):
            self.step = self.steps[i + 1]
        return self.step

    def back(self) -> Step:
        self._require_open()
        i = self.steps.index(self.step)
        if i > 0:
            self.step = self.steps[i - 1]
        return self.step

    def update(self, **changes) -> ListingDraft:
        """Apply field changes; switching category restarts after the type step."""
        self._require_open()
        if "category" in changes:
            changes["category"] = Category(changes["category"])
        old_category = self.draft.category
        self.draft = replace(self.draft, **changes)

        if self.draft.category != old_category:
            rental = RentalType.ROOMS if self.draft.category == Category.SINGLE_ROOM else RentalType.FULL
            self.draft = replace(self.draft, rental_type=rental)
            if self.step != Step.PROPERTY_TYPE:
                self.step = self.steps[1]
        return self.draft

    # ── Rooms ──────────────────────────────────────────────────────────────

    def add_room(self, **fields) -> DraftRoom:
        self._require_open()
        if self.draft.category != Category.SINGLE_ROOM:
            raise InvalidTransition("Rooms can only be added to a by-rooms listing")
        room_id = fields.pop("id", None) or f"room-{len(self.draft.rooms) + 1}-{int(time.time() * 1000)}"
        name = fields.pop("name", None) or room_title(len(self.draft.rooms))
        room = DraftRoom(id=room_id, name=name, **fields)
        self.draft.rooms = self.draft.rooms + [room]
        return room

    def remove_room(self, room_id: str) -> None:
        self._require_open()
        self.draft.rooms = renumber_rooms([r for r in self.draft.rooms if r.id != room_id])
        self.room_photo_paths.pop(room_id, None)

    # ── Photos ─────────────────────────────────────────────────────────────

    def attach_photos(self, paths: list, room_id: Optional[str] = None) -> None:
        """Validate and stage photos; the first property photo unlocks submission."""
        self._require_open()
        for path in paths:
            if self.max_upload_bytes:
                validate_upload(path, IMAGE_ACCEPT, self.max_upload_bytes)
            else:
                validate_upload(path, IMAGE_ACCEPT)

        if room_id is None:
            self.photo_paths.extend(paths)
        else:
            if room_id not in {r.id for r in self.draft.rooms}:
                raise ValidationError(f"Unknown room: {room_id}")
            self.room_photo_paths.setdefault(room_id, []).extend(paths)

        if self.photo_paths:
            self._move(WizardState.PHOTOS_UPLOADED)

    # ── Completion ─────────────────────────────────────────────────────────

    def missing_fields(self) -> list[str]:
        missing = []
        if not self.draft.title.strip():
            missing.append("title")
        if not self.draft.description.strip():
            missing.append("description")
        return missing

    def submit_for_review(self, service: PropertyService) -> dict:
        return self._finish(service, WizardState.SUBMITTED, ListingStatus.REVIEW)

    def save_for_later(self, service: PropertyService) -> dict:
        return self._finish(service, WizardState.SAVED_DRAFT, ListingStatus.DRAFT)

    def retry(self) -> WizardState:
        """Leave the failed state and go back to editing."""
        self._move(WizardState.PHOTOS_UPLOADED if self.photo_paths else WizardState.EDITING)
        return self.state

    def _finish(self, service: PropertyService, target: WizardState, status: ListingStatus) -> dict:
        if target not in _WIZARD_TRANSITIONS[self.state]:
            raise InvalidTransition(f"Cannot go from {self.state.value} to {target.value}")
        missing = self.missing_fields()
        if missing:
            raise ValidationError("Please complete all required fields before submitting: "
                                  + ", ".join(missing))

        draft = replace(self.draft, status=status)
        try:
            self.result = service.create(draft, self.photo_paths, self.room_photo_paths)
        except (ApiError, OSError) as e:
            logger.error(f"Error creating property: {e}")
            self._move(WizardState.FAILED)
            raise
        self.draft = draft
        self._move(target)
        logger.info(f"Property {'submitted for review' if target is WizardState.SUBMITTED else 'saved as draft'}")
        return self.result

    def _move(self, target: WizardState) -> None:
        if target not in _WIZARD_TRANSITIONS[self.state]:
            raise InvalidTransition(f"Cannot go from {self.state.value} to {target.value}")
        self.state = target

    def _require_open(self) -> None:
        if self.state in (WizardState.SUBMITTED, WizardState.SAVED_DRAFT):
            raise InvalidTransition(f"Wizard already {self.state.value}")


# ── Application progress ────────────────────────────────────────────────────

class ProgressState(str, Enum):
    EMPTY = "empty"
    IN_PROGRESS = "in-progress"
    SUBMITTED = "submitted"


class ApplicationProgress:
    """
    Server-side autosave for one property's application.

    save() is debounced; call tick() from the event loop (or flush() when
    leaving) to actually send it. Autosave failures are logged, never
    raised, so they can't interrupt the form.
    """

    def __init__(self, service: ApplicationService, property_id: str, delay: float = 2.0,
                 clock: Callable[[], float] = time.monotonic):
        self.service = service
        self.property_id = property_id
        self.state = ProgressState.EMPTY
        self.current_step = 1
        self.completed_steps: list[int] = []
        self.last_saved_at: Optional[datetime] = None
        self.saving = False
        self._pending = Debouncer(None, delay, clock)

    def load(self) -> Optional[dict]:
        """Restore saved progress; no draft on the server just means a fresh start."""
        self._require_not_submitted()
        try:
            draft = self.service.get_progress(self.property_id)
        except ApiError:
            draft = None
        if not draft:
            self._reset(ProgressState.EMPTY)
            return None
        self._apply(draft)
        logger.info(f"Resuming application for {self.property_id} from step {self.current_step}")
        return draft

    def save(self, step: int, completed_steps: list, fields: Optional[dict] = None) -> None:
        self._require_not_submitted()
        self._pending.push((step, list(completed_steps), dict(fields or {})))

    def tick(self) -> bool:
        if self._pending.poll():
            return self._save_now(*self._pending.value)
        return False

    def flush(self) -> bool:
        if self._pending.flush():
            return self._save_now(*self._pending.value)
        return False

    def delete(self) -> None:
        self._require_not_submitted()
        self.service.delete_progress(self.property_id)
        self._reset(ProgressState.EMPTY)

    def submit(self) -> dict:
        self._require_not_submitted()
        self.flush()
        if self.state is not ProgressState.IN_PROGRESS:
            raise InvalidTransition("Nothing saved to submit")
        application = self.service.submit_draft(self.property_id)
        self._reset(ProgressState.SUBMITTED)
        logger.info(f"Application for {self.property_id} submitted")
        return application

    def _save_now(self, step: int, completed_steps: list, fields: dict) -> bool:
        self.saving = True
        try:
            draft = self.service.save_progress(self.property_id, step, completed_steps, fields)
        except ApiError as e:
            logger.error(f"Failed to save progress: {e}")
            return False
        finally:
            self.saving = False
        self._apply(draft or {"currentStep": step, "completedSteps": completed_steps})
        return True

    def _apply(self, draft: dict) -> None:
        self.state = ProgressState.IN_PROGRESS
        self.current_step = int(draft.get("currentStep", 1))
        self.completed_steps = list(draft.get("completedSteps", []))
        saved_at = draft.get("lastSavedAt")
        try:
            self.last_saved_at = (datetime.fromisoformat(saved_at.replace("Z", "+00:00"))
                                  if saved_at else datetime.now())
        except ValueError:
            self.last_saved_at = datetime.now()

    def _reset(self, state: ProgressState) -> None:
        self.state = state
        self.current_step = 1
        self.completed_steps = []
        self.last_saved_at = None

    def _require_not_submitted(self) -> None:
        if self.state is ProgressState.SUBMITTED:
            raise InvalidTransition("Application already submitted")


# ── Contract lifecycle ──────────────────────────────────────────────────────

class ContractAction(str, Enum):
    SEND_FOR_SIGNATURES = "send_for_signatures"
    SIGN = "sign"
    ACTIVATE = "activate"
    TERMINATE = "terminate"
    RENEW = "renew"


class ContractLifecycle:
    """
    Drives one contract through draft -> pending signatures -> active ->
    expired/terminated. Every action goes through the backend and the
    returned document replaces the local copy.
    """

    def __init__(self, contract: Contract, service: ContractService,
                 today: Callable[[], date] = date.today):
        self.contract = contract
        self.service = service
        self.today = today

    def available_actions(self) -> list[ContractAction]:
        status = self.contract.status
        if status == ContractStatus.DRAFT:
            return [ContractAction.SEND_FOR_SIGNATURES]
        if status == ContractStatus.PENDING_SIGNATURES:
            if self.contract.signatures.all_signed:
                return [ContractAction.ACTIVATE]
            return [ContractAction.SIGN]
        if status == ContractStatus.ACTIVE:
            actions = []
            if renewal_window_open(self.contract, self.today()):
                actions.append(ContractAction.RENEW)
            actions.append(ContractAction.TERMINATE)
            return actions
        if status == ContractStatus.EXPIRED:
            return [ContractAction.RENEW]
        return []

    def send_for_signatures(self) -> Contract:
        self._require(ContractAction.SEND_FOR_SIGNATURES)
        return self._apply(self.service.update(
            self.contract.id, {"status": ContractStatus.PENDING_SIGNATURES.value}
        ), "sent for signatures")

    def sign(self, party: str, guarantor_id: Optional[str] = None,
             signature: Optional[str] = None) -> Contract:
        self._require(ContractAction.SIGN)
        if party == "guarantor" and guarantor_id not in self.contract.guarantor_ids:
            raise ValidationError(f"Unknown guarantor: {guarantor_id}")
        return self._apply(self.service.sign(self.contract.id, party, guarantor_id, signature),
                           f"signed by {party}")

    def activate(self) -> Contract:
        self._require(ContractAction.ACTIVATE)
        return self._apply(self.service.activate(self.contract.id), "activated")

    def terminate(self, reason: str) -> Contract:
        self._require(ContractAction.TERMINATE)
        if not (reason or "").strip():
            raise ValidationError("A termination reason is required")
        return self._apply(self.service.terminate(self.contract.id, reason.strip()), "terminated")

    def renew(self, new_end_date: date, rent_amount: Optional[int] = None,
              deposit_amount: Optional[int] = None) -> Contract:
        self._require(ContractAction.RENEW)
        if new_end_date <= max(self.contract.end_date, self.today()):
            raise ValidationError("The new end date must be later than the current one")
        terms = {k: v for k, v in (("rentAmount", rent_amount),
                                   ("depositAmount", deposit_amount)) if v is not None}
        return self._apply(self.service.renew(self.contract.id, new_end_date, terms or None),
                           f"renewed until {new_end_date.isoformat()}")

    def _require(self, action: ContractAction) -> None:
        if action not in self.available_actions():
            raise InvalidTransition(
                f"Cannot {action.value} a contract in status {self.contract.status.value}"
            )

    def _apply(self, contract: Contract, what: str) -> Contract:
        self.contract = contract
        logger.info(f"Contract {contract.id} {what} ({contract.status.value})")
        return contract
