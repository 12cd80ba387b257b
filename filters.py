"""
Client-side filtering and sorting for listing results.

The backend already filters by price, zone and category; furnishing and
amenities are matched here, and unavailable listings are always hidden.
"""

import logging
from datetime import date
from typing import Optional

from config import SearchDefaults
from models import Category, FilterState, Listing

logger = logging.getLogger(__name__)

SORT_KEYS = ("newest", "price-asc", "price-desc")
PET_FRIENDLY = "pet-friendly"

# Category filter values understood by build_server_params
ALL_CATEGORIES = "all"


def apply_filters(
    listings: list[Listing],
    state: FilterState,
    sort_by: str = "newest",
) -> list[Listing]:
    """
    Return the visible subset of listings, ordered by sort_by.

    Steps: availability gate, furnishing, amenities, stable sort.
    """
    visible = [
        listing for listing in listings
        if listing.available
        and _matches_furnishing(listing, state.furnishing)
        and _matches_amenities(listing, state.amenities)
    ]
    logger.debug(f"{len(visible)}/{len(listings)} listings pass client filters")
    return sort_listings(visible, sort_by)


def _matches_furnishing(listing: Listing, furnishing: str) -> bool:
    if furnishing == "all":
        return True
    return listing.furnishing.value == furnishing


def _matches_amenities(listing: Listing, wanted) -> bool:
    """OR semantics: one matching amenity is enough."""
    if not wanted:
        return True
    tags = [str(a).lower() for a in listing.amenities]
    for amenity in wanted:
        if amenity == PET_FRIENDLY:
            if listing.allows_pets:
                return True
            continue
        needle = amenity.lower()
        if any(needle in tag for tag in tags):
            return True
    return False


def sort_listings(listings: list[Listing], sort_by: str) -> list[Listing]:
    """Stable sort; unknown keys sort newest-first."""
    if sort_by == "price-asc":
        return sorted(listings, key=lambda l: l.price)
    if sort_by == "price-desc":
        return sorted(listings, key=lambda l: l.price, reverse=True)
    if sort_by != "newest":
        logger.debug(f"Unknown sort key {sort_by!r}, using newest")
    return sorted(listings, key=_availability_key, reverse=True)


def _availability_key(listing: Listing) -> date:
    # Undated listings sink to the bottom of newest-first
    return listing.available_date or date.min


def build_server_params(
    category: str,
    state: FilterState,
    zone: str = "",
    page: int = 1,
    defaults: Optional[SearchDefaults] = None,
) -> dict:
    """
    Query parameters for the listing search endpoint.

    Anything equal to the unrestricted default is left out so that
    equivalent searches produce identical requests.
    """
    defaults = defaults or SearchDefaults()
    params: dict = {"page": page, "limit": defaults.page_size}

    if category != ALL_CATEGORIES:
        params["type"] = "property" if Category(category) is Category.FULL_UNIT else "rooms"

    low, high = state.price_range
    if low > defaults.min_price:
        params["minPrice"] = low
    if high < defaults.max_price:
        params["maxPrice"] = high

    if zone:
        params["zone"] = zone

    return params
