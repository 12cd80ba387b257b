import pytest

from models import Category, Furnishing, Listing, RoomTerms, Structure
from session import SessionStore


def make_listing(id="1", price=12000, furnishing=Furnishing.FURNISHED, available=True,
                 amenities=(), allows_pets=False, zone="Condesa", available_from="2024-02-01",
                 category=Category.FULL_UNIT, room=None) -> Listing:
    if category is Category.SINGLE_ROOM and room is None:
        room = RoomTerms()
    return Listing(
        id=id,
        title=f"Listing {id}",
        price=price,
        category=category,
        structure=Structure.APARTMENT,
        area=60,
        bedrooms=2,
        allows_pets=allows_pets,
        furnishing=furnishing,
        available=available,
        zone=zone,
        amenities=tuple(amenities),
        available_from=available_from,
        room=room,
    )


class FakeResponse:
    def __init__(self, status=200, body=None, raw=None, content=b""):
        self.status_code = status
        self.content = content
        self._body = body
        self._raw = raw

    @property
    def ok(self):
        return 200 <= self.status_code < 400

    def json(self):
        if self._raw is not None:
            raise ValueError("No JSON object could be decoded")
        return self._body


class FakeHTTP:
    """Stands in for requests.Session: records calls, replays queued responses."""

    def __init__(self):
        self.headers = {}
        self.calls = []
        self.responses = []

    def queue(self, status=200, body=None, raw=None, error=None, content=b""):
        self.responses.append(error or FakeResponse(status, body, raw, content))

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def http():
    return FakeHTTP()


@pytest.fixture
def session():
    return SessionStore()
