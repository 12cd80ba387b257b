"""
Listing models shared by the search, map and hosting code.

Two distinct shapes exist for a property:
  - Listing: what a tenant browses (flat, display-ready).
  - ListingDraft: what a hoster builds in the creation wizard (nested,
    mirrors the backend document).

The backend speaks Spanish vocabulary ("casa", "amueblada", "rooms"...);
it is translated in this module and nowhere else.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional

logger = logging.getLogger(__name__)


# ── Enums ───────────────────────────────────────────────────────────────────

class Category(str, Enum):
    FULL_UNIT = "full-unit"
    SINGLE_ROOM = "single-room"


class Structure(str, Enum):
    APARTMENT = "apartment"
    HOUSE = "house"


class Furnishing(str, Enum):
    FURNISHED = "furnished"
    SEMI_FURNISHED = "semi-furnished"
    UNFURNISHED = "unfurnished"


class Bathroom(str, Enum):
    PRIVATE = "private"
    SHARED = "shared"


class Scheme(str, Enum):
    MIXED = "mixed"
    MEN = "men"
    WOMEN = "women"


class RentalType(str, Enum):
    FULL = "full"
    ROOMS = "rooms"


class ListingStatus(str, Enum):
    DRAFT = "draft"
    REVIEW = "review"
    APPROVED = "approved"
    REJECTED = "rejected"
    RETURNED = "returned"


# Backend vocabulary <-> ours
_CATEGORY_FROM_BACKEND = {"property": Category.FULL_UNIT, "rooms": Category.SINGLE_ROOM}
_CATEGORY_TO_BACKEND = {v: k for k, v in _CATEGORY_FROM_BACKEND.items()}

_STRUCTURE_FROM_BACKEND = {"casa": Structure.HOUSE, "departamento": Structure.APARTMENT}
_STRUCTURE_TO_BACKEND = {v: k for k, v in _STRUCTURE_FROM_BACKEND.items()}

_FURNISHING_FROM_BACKEND = {
    "amueblada": Furnishing.FURNISHED,
    "semi-amueblada": Furnishing.SEMI_FURNISHED,
    "sin-amueblar": Furnishing.UNFURNISHED,
}
_FURNISHING_TO_BACKEND = {v: k for k, v in _FURNISHING_FROM_BACKEND.items()}

# "ambos" (both) is listed as a full unit
_RENTAL_FROM_BACKEND = {
    "completa": RentalType.FULL,
    "habitaciones": RentalType.ROOMS,
    "ambos": RentalType.FULL,
}
_RENTAL_TO_BACKEND = {RentalType.FULL: "completa", RentalType.ROOMS: "habitaciones"}


# ── Tenant-facing listing ───────────────────────────────────────────────────

@dataclass(frozen=True)
class HouseRules:
    pets: bool = False
    smoking: bool = False
    parties: bool = False


@dataclass(frozen=True)
class RoomTerms:
    """Attributes that only exist for single-room listings."""
    bathroom: Bathroom = Bathroom.SHARED
    scheme: Optional[Scheme] = None


@dataclass(frozen=True)
class Listing:
    """A rentable unit as shown to tenants."""
    id: str
    title: str
    price: int
    category: Category
    structure: Structure
    area: int
    bedrooms: int
    allows_pets: bool
    furnishing: Furnishing
    available: bool
    zone: str
    amenities: tuple = ()
    available_from: str = ""             # ISO date
    description: str = ""
    image: str = ""
    rules: HouseRules = field(default_factory=HouseRules)
    room: Optional[RoomTerms] = None     # single-room only

    def __post_init__(self):
        if self.room is not None and self.category != Category.SINGLE_ROOM:
            raise ValueError(f"Listing {self.id!r}: room terms on a {self.category.value} listing")

    @property
    def available_date(self) -> Optional[date]:
        if not self.available_from:
            return None
        try:
            return date.fromisoformat(self.available_from[:10])
        except ValueError:
            return None


# ── Hoster-facing draft ─────────────────────────────────────────────────────

@dataclass
class Location:
    address: str = ""
    lat: float = 0.0
    lng: float = 0.0
    zone: str = ""


@dataclass
class DraftRoom:
    id: str
    name: str = ""
    characteristics: str = "closet_bathroom"
    furnishing: Furnishing = Furnishing.UNFURNISHED
    price: int = 0
    available_from: str = ""
    photos: list = field(default_factory=list)


@dataclass
class ListingDraft:
    """A property as built by a hoster before (and after) it is published."""
    title: str = ""
    description: str = ""
    category: Category = Category.FULL_UNIT
    structure: Structure = Structure.APARTMENT
    location: Location = field(default_factory=Location)
    area: int = 0
    bathrooms: int = 1
    parking: int = 0
    furnishing: Furnishing = Furnishing.UNFURNISHED
    amenities: list = field(default_factory=list)
    price: int = 0
    rental_type: RentalType = RentalType.FULL
    rules: HouseRules = field(default_factory=HouseRules)
    images: list = field(default_factory=list)
    rooms: list = field(default_factory=list)
    status: ListingStatus = ListingStatus.DRAFT
    id: Optional[str] = None


# ── Filter state ────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class FilterState:
    """User-selected price range, furnishing preference and amenities."""
    price_range: tuple = (3000, 50000)
    furnishing: str = "all"              # "all" or a Furnishing value
    amenities: tuple = ()

    def __post_init__(self):
        low, high = self.price_range
        if low > high:
            raise ValueError(f"Invalid price range: {low} > {high}")


# ── Backend conversions ─────────────────────────────────────────────────────

def _backend_id(item: dict) -> str:
    return str(item.get("id") or item.get("_id") or "")


def _iso_day(value: Any) -> str:
    if not value:
        return date.today().isoformat()
    if isinstance(value, (date, datetime)):
        return value.isoformat()[:10]
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00")).date().isoformat()
    except ValueError:
        logger.debug(f"Unparseable date {value!r}, using today")
        return date.today().isoformat()


def _rules_from_backend(rules: Optional[dict]) -> HouseRules:
    rules = rules or {}
    return HouseRules(
        pets=bool(rules.get("pets", False)),
        smoking=bool(rules.get("smoking", False)),
        parties=bool(rules.get("parties", False)),
    )


def listing_from_backend(item: dict) -> Listing:
    """Normalize a backend property document into a tenant Listing."""
    category = _CATEGORY_FROM_BACKEND.get(item.get("type"), Category.FULL_UNIT)
    amenities = tuple(item.get("amenities") or [])
    rules = _rules_from_backend(item.get("rules"))
    images = item.get("images") or []

    room = None
    if category is Category.SINGLE_ROOM:
        private = any(
            "privado" in str(a).lower() or "private" in str(a).lower() for a in amenities
        )
        room = RoomTerms(bathroom=Bathroom.PRIVATE if private else Bathroom.SHARED)

    return Listing(
        id=_backend_id(item),
        title=item.get("title") or "",
        price=int((item.get("pricing") or {}).get("totalPrice") or 0),
        category=category,
        structure=Structure.HOUSE if item.get("propertyType") == "casa" else Structure.APARTMENT,
        area=int(item.get("area") or 0),
        bedrooms=int(item.get("bedrooms") or 0),
        allows_pets=rules.pets,
        furnishing=_FURNISHING_FROM_BACKEND.get(item.get("furniture"), Furnishing.UNFURNISHED),
        available=item.get("status") == ListingStatus.APPROVED.value,
        zone=(item.get("location") or {}).get("zone") or "",
        amenities=amenities,
        available_from=_iso_day(item.get("createdAt")),
        description=item.get("description") or "",
        image=images[0] if images else "/placeholder.svg",
        rules=rules,
        room=room,
    )


def draft_from_backend(item: dict) -> ListingDraft:
    """Load a backend property document into an editable ListingDraft."""
    loc = item.get("location") or {}
    pricing = item.get("pricing") or {}
    rooms = [
        DraftRoom(
            id=str(r.get("id", "")),
            name=r.get("name", ""),
            characteristics=r.get("characteristics", "closet_bathroom"),
            furnishing=_FURNISHING_FROM_BACKEND.get(r.get("furniture"), Furnishing.UNFURNISHED),
            price=int(r.get("price") or 0),
            available_from=_iso_day(r.get("availableFrom")),
            photos=list(r.get("photos") or []),
        )
        for r in item.get("rooms") or []
    ]
    try:
        status = ListingStatus(item.get("status", "draft"))
    except ValueError:
        status = ListingStatus.DRAFT

    return ListingDraft(
        id=_backend_id(item) or None,
        title=item.get("title") or "",
        description=item.get("description") or "",
        category=_CATEGORY_FROM_BACKEND.get(item.get("type"), Category.FULL_UNIT),
        structure=_STRUCTURE_FROM_BACKEND.get(item.get("propertyType"), Structure.APARTMENT),
        location=Location(
            address=loc.get("address") or "",
            lat=float(loc.get("lat") or 0.0),
            lng=float(loc.get("lng") or 0.0),
            zone=loc.get("zone") or "",
        ),
        area=int(item.get("area") or 0),
        bathrooms=int(item.get("bathrooms") or 1),
        parking=int(item.get("parking") or 0),
        furnishing=_FURNISHING_FROM_BACKEND.get(item.get("furniture"), Furnishing.UNFURNISHED),
        amenities=list(item.get("amenities") or []),
        price=int(pricing.get("totalPrice") or 0),
        rental_type=_RENTAL_FROM_BACKEND.get(pricing.get("rentalType"), RentalType.FULL),
        rules=_rules_from_backend(item.get("rules")),
        images=list(item.get("images") or []),
        rooms=rooms,
        status=status,
    )


def draft_to_payload(draft: ListingDraft) -> dict:
    """
    Build the backend create/update document for a draft.

    Photos are not part of the payload; they travel as multipart files.
    """
    return {
        "title": draft.title,
        "description": draft.description,
        "type": _CATEGORY_TO_BACKEND[draft.category],
        "propertyType": _STRUCTURE_TO_BACKEND[draft.structure],
        "location": {
            "address": draft.location.address,
            "lat": draft.location.lat,
            "lng": draft.location.lng,
            "zone": draft.location.zone or "auto",
        },
        "area": draft.area,
        "bedrooms": len(draft.rooms),
        "bathrooms": draft.bathrooms,
        "parking": draft.parking,
        "furniture": _FURNISHING_TO_BACKEND[draft.furnishing],
        "amenities": list(draft.amenities),
        "pricing": {
            "totalPrice": draft.price,
            "rentalType": _RENTAL_TO_BACKEND[draft.rental_type],
        },
        "rules": {
            "pets": draft.rules.pets,
            "smoking": draft.rules.smoking,
            "parties": draft.rules.parties,
        },
        "status": draft.status.value,
        "rooms": [
            {
                "id": room.id,
                "name": room.name or "Habitación",
                "characteristics": room.characteristics,
                "furniture": _FURNISHING_TO_BACKEND[room.furnishing],
                "price": room.price,
                "availableFrom": room.available_from or date.today().isoformat(),
            }
            for room in draft.rooms
        ],
    }


# ── Conversions between the two shapes ──────────────────────────────────────

def draft_to_listing(draft: ListingDraft) -> Listing:
    """How a published draft looks to a tenant."""
    room = None
    if draft.category == Category.SINGLE_ROOM:
        private = any("privado" in a.lower() or "private" in a.lower() for a in draft.amenities)
        room = RoomTerms(bathroom=Bathroom.PRIVATE if private else Bathroom.SHARED)

    return Listing(
        id=draft.id or "",
        title=draft.title or generate_title(draft),
        price=draft.price,
        category=draft.category,
        structure=draft.structure,
        area=draft.area,
        bedrooms=len(draft.rooms),
        allows_pets=draft.rules.pets,
        furnishing=draft.furnishing,
        available=draft.status is ListingStatus.APPROVED,
        zone=draft.location.zone,
        amenities=tuple(draft.amenities),
        available_from=date.today().isoformat(),
        description=draft.description,
        image=draft.images[0] if draft.images else "/placeholder.svg",
        rules=draft.rules,
        room=room,
    )


def listing_to_draft(listing: Listing) -> ListingDraft:
    """Seed an editable draft from a tenant listing."""
    rental = RentalType.ROOMS if listing.category == Category.SINGLE_ROOM else RentalType.FULL
    return ListingDraft(
        id=listing.id or None,
        title=listing.title,
        description=listing.description,
        category=listing.category,
        structure=listing.structure,
        location=Location(address=listing.title, zone=listing.zone),
        area=listing.area,
        furnishing=listing.furnishing,
        amenities=list(listing.amenities),
        price=listing.price,
        rental_type=rental,
        rules=replace(listing.rules, pets=listing.allows_pets),
        images=[listing.image] if listing.image else [],
        status=ListingStatus.APPROVED if listing.available else ListingStatus.DRAFT,
    )


# ── Titles ──────────────────────────────────────────────────────────────────

def generate_title(draft: ListingDraft) -> str:
    """
    Auto-title for a draft: "[House|Apartment][ by rooms] in [Zone]".

    Zone falls back to the first segment of the address.
    """
    kind = "House" if draft.structure is Structure.HOUSE else "Apartment"
    by_rooms = " by rooms" if draft.category == Category.SINGLE_ROOM else ""
    zone = draft.location.zone or draft.location.address.split(",")[0].strip() or "Unknown Location"
    return f"{kind}{by_rooms} in {zone}"


def room_title(index: int) -> str:
    return f"Room {index + 1}"


def renumber_rooms(rooms: list) -> list:
    """Keep room names sequential after deletions or reordering."""
    return [replace(room, name=room_title(i)) for i, room in enumerate(rooms)]


def ensure_title(draft: ListingDraft) -> ListingDraft:
    if draft.title.strip():
        return draft
    return replace(draft, title=generate_title(draft))
