from datetime import date

import pytest

from conftest import make_listing
from models import (Bathroom, Category, DraftRoom, FilterState, Furnishing, ListingDraft,
                    ListingStatus, Location, RentalType, RoomTerms, Structure,
                    draft_from_backend, draft_to_listing, draft_to_payload, ensure_title,
                    generate_title, listing_from_backend, listing_to_draft, renumber_rooms)

BACKEND_ROOM = {
    "_id": "65a1b2c3d4e5f60718293a4b",
    "title": "Habitación en Condesa",
    "description": "Cerca del parque",
    "type": "rooms",
    "propertyType": "casa",
    "location": {"address": "Amsterdam 10, Condesa", "lat": 19.41, "lng": -99.17, "zone": "Condesa"},
    "area": 18,
    "bedrooms": 1,
    "bathrooms": 1,
    "furniture": "semi-amueblada",
    "amenities": ["Baño privado", "Internet"],
    "pricing": {"totalPrice": 9500, "rentalType": "habitaciones"},
    "rules": {"pets": True, "smoking": False},
    "images": ["https://cdn.example.com/1.jpg"],
    "status": "approved",
    "createdAt": "2024-02-10T12:00:00.000Z",
}


def test_room_terms_rejected_on_full_unit():
    with pytest.raises(ValueError):
        make_listing(category=Category.FULL_UNIT, room=RoomTerms())


def test_full_unit_has_no_room_terms():
    assert make_listing().room is None


def test_listing_from_backend_room():
    listing = listing_from_backend(BACKEND_ROOM)
    assert listing.id == "65a1b2c3d4e5f60718293a4b"
    assert listing.category is Category.SINGLE_ROOM
    assert listing.structure is Structure.HOUSE
    assert listing.furnishing is Furnishing.SEMI_FURNISHED
    assert listing.price == 9500
    assert listing.allows_pets is True
    assert listing.available is True
    assert listing.zone == "Condesa"
    assert listing.available_from == "2024-02-10"
    assert listing.room.bathroom is Bathroom.PRIVATE
    assert listing.image == "https://cdn.example.com/1.jpg"


def test_listing_from_backend_defaults():
    listing = listing_from_backend({
        "id": "x", "title": "Depa", "type": "property", "furniture": "sin-amueblar",
        "status": "review",
    })
    assert listing.category is Category.FULL_UNIT
    assert listing.room is None
    assert listing.available is False
    assert listing.price == 0
    assert listing.image == "/placeholder.svg"
    assert listing.available_from == date.today().isoformat()


def test_null_zone_reads_as_empty():
    listing = listing_from_backend({**BACKEND_ROOM, "location": {"zone": None}})
    assert listing.zone == ""
    draft = draft_from_backend({"location": {"zone": None, "address": None}})
    assert (draft.location.zone, draft.location.address) == ("", "")


def test_shared_bathroom_without_private_amenity():
    listing = listing_from_backend({**BACKEND_ROOM, "amenities": ["Internet"]})
    assert listing.room.bathroom is Bathroom.SHARED


def test_draft_round_trip_through_backend_vocabulary():
    draft = draft_from_backend(BACKEND_ROOM)
    assert draft.id == "65a1b2c3d4e5f60718293a4b"
    assert draft.rental_type is RentalType.ROOMS
    assert draft.status is ListingStatus.APPROVED

    payload = draft_to_payload(draft)
    assert payload["type"] == "rooms"
    assert payload["propertyType"] == "casa"
    assert payload["furniture"] == "semi-amueblada"
    assert payload["pricing"] == {"totalPrice": 9500, "rentalType": "habitaciones"}
    assert payload["location"]["zone"] == "Condesa"


def test_payload_counts_rooms_and_defaults_zone():
    draft = ListingDraft(
        title="Casa", category=Category.SINGLE_ROOM,
        rooms=[DraftRoom(id="r1", price=5000), DraftRoom(id="r2", price=6000)],
    )
    payload = draft_to_payload(draft)
    assert payload["bedrooms"] == 2
    assert payload["location"]["zone"] == "auto"
    assert [r["id"] for r in payload["rooms"]] == ["r1", "r2"]
    assert "images" not in payload


def test_ambos_rental_type_reads_as_full():
    draft = draft_from_backend({**BACKEND_ROOM, "pricing": {"totalPrice": 1, "rentalType": "ambos"}})
    assert draft.rental_type is RentalType.FULL


def test_draft_to_listing_and_back():
    draft = ListingDraft(
        id="p1", title="Depa Roma", description="Luminoso", price=20000,
        location=Location(zone="Roma Norte"), furnishing=Furnishing.FURNISHED,
        status=ListingStatus.APPROVED, images=["a.jpg"],
    )
    listing = draft_to_listing(draft)
    assert listing.available is True
    assert listing.zone == "Roma Norte"
    assert listing.room is None

    back = listing_to_draft(listing)
    assert back.title == draft.title
    assert back.price == draft.price
    assert back.furnishing is Furnishing.FURNISHED
    assert back.status is ListingStatus.APPROVED


def test_generated_titles():
    house_rooms = ListingDraft(structure=Structure.HOUSE, category=Category.SINGLE_ROOM,
                               location=Location(zone="Condesa"))
    assert generate_title(house_rooms) == "House by rooms in Condesa"

    flat = ListingDraft(location=Location(address="Av. Reforma 222, Juárez"))
    assert generate_title(flat) == "Apartment in Av. Reforma 222"

    assert generate_title(ListingDraft()) == "Apartment in Unknown Location"


def test_ensure_title_keeps_existing():
    assert ensure_title(ListingDraft(title="Mine")).title == "Mine"
    assert ensure_title(ListingDraft(location=Location(zone="Polanco"))).title == "Apartment in Polanco"


def test_renumber_rooms():
    rooms = [DraftRoom(id="b", name="Room 2"), DraftRoom(id="c", name="Room 3")]
    assert [r.name for r in renumber_rooms(rooms)] == ["Room 1", "Room 2"]


def test_filter_state_rejects_inverted_range():
    with pytest.raises(ValueError):
        FilterState(price_range=(10000, 5000))
