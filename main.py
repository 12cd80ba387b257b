#!/usr/bin/env python3
"""
Rental Finder: main entry point

Searches the marketplace backend, applies the client-side filters and
prints the visible listings plus the map clusters they would form.

Usage:
    python main.py                              # Search the configured backend
    python main.py --demo                       # Use sample data (no backend needed)
    python main.py --demo --sort price-asc --furnishing furnished --amenity gym
    python main.py --zone Condesa --mobile      # Cluster with the mobile radius

Environment Variables:
    RENTAL_API_URL      backend base URL
    RENTAL_API_TIMEOUT  request timeout in seconds
    RENTAL_SESSION_FILE where the login token is cached
"""

import argparse
import json
import logging
import random
import sys
from datetime import date, timedelta

from clustering import ZONE_COORDINATES, cluster_points, jitter_for, place_listings, radius_for
from config import AppConfig
from filters import ALL_CATEGORIES, SORT_KEYS, apply_filters
from models import (Bathroom, Category, FilterState, Furnishing, HouseRules, Listing,
                    RoomTerms, Scheme, Structure)
from search import PropertySearch
from services import PropertyService
from session import SessionStore

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)


def generate_demo_data(seed=None) -> list[Listing]:
    """Generate realistic sample listings for trying the filters without a backend."""
    rng = random.Random(seed)

    price_bands = {
        "Roma Norte": (14000, 32000),
        "Roma Sur":   (11000, 26000),
        "Condesa":    (15000, 38000),
        "Polanco":    (22000, 50000),
        "Santa Fe":   (18000, 45000),
        "Coyoacán":   (9000, 24000),
        "Del Valle":  (10000, 28000),
        "Doctores":   (6000, 15000),
        "Narvarte":   (8000, 20000),
        "Juárez":     (12000, 30000),
    }
    amenities_pool = [
        "Cocina equipada", "Lavadora", "Internet", "Aire acondicionado", "Balcón",
        "Gym", "Roof garden", "Pool", "Estacionamiento", "Seguridad 24h",
        "Baño privado", "Área común",
    ]

    listings = []
    for i, zone in enumerate(ZONE_COORDINATES):
        low, high = price_bands[zone]
        for j in range(rng.randint(2, 4)):
            room = rng.random() < 0.4
            category = Category.SINGLE_ROOM if room else Category.FULL_UNIT
            price = rng.randint(low, high) // (3 if room else 1)
            amenities = tuple(rng.sample(amenities_pool, rng.randint(2, 6)))
            pets = rng.random() > 0.5
            listed = date.today() - timedelta(days=rng.randint(0, 45))
            structure = rng.choice(list(Structure))
            kind = "Habitación" if room else ("Casa" if structure is Structure.HOUSE else "Departamento")

            listings.append(Listing(
                id=f"demo_{i}_{j}",
                title=f"{kind} en {zone}",
                price=price,
                category=category,
                structure=structure,
                area=rng.randint(12, 25) if room else rng.randint(45, 160),
                bedrooms=1 if room else rng.randint(1, 3),
                allows_pets=pets,
                furnishing=rng.choice(list(Furnishing)),
                available=rng.random() > 0.15,
                zone=zone,
                amenities=amenities,
                available_from=listed.isoformat(),
                rules=HouseRules(pets=pets),
                room=RoomTerms(
                    bathroom=Bathroom.PRIVATE if "Baño privado" in amenities else Bathroom.SHARED,
                    scheme=rng.choice(list(Scheme)),
                ) if room else None,
            ))

    return listings


def main():
    parser = argparse.ArgumentParser(description="Rental Finder")
    parser.add_argument("--demo", action="store_true", help="Use sample data (no backend needed)")
    parser.add_argument("--seed", type=int, help="Random seed for demo data and map jitter")
    parser.add_argument("--category", choices=[ALL_CATEGORIES] + [c.value for c in Category],
                        default=ALL_CATEGORIES)
    parser.add_argument("--zone", default="", help="Zone name, e.g. Condesa")
    parser.add_argument("--min-price", type=int)
    parser.add_argument("--max-price", type=int)
    parser.add_argument("--furnishing", choices=["all"] + [f.value for f in Furnishing], default="all")
    parser.add_argument("--amenity", action="append", default=[],
                        help="Amenity to match (repeatable; 'pet-friendly' checks the pet policy)")
    parser.add_argument("--sort", choices=SORT_KEYS, default="newest")
    parser.add_argument("--mobile", action="store_true", help="Cluster with the mobile radius")
    parser.add_argument("--json", action="store_true", help="Print results as JSON")
    args = parser.parse_args()

    config = AppConfig()
    filters = FilterState(
        price_range=(
            args.min_price if args.min_price is not None else config.search.min_price,
            args.max_price if args.max_price is not None else config.search.max_price,
        ),
        furnishing=args.furnishing,
        amenities=tuple(args.amenity),
    )

    if args.demo:
        logger.info("Running in DEMO mode with sample data...")
        listings = generate_demo_data(args.seed)
        listings = [
            l for l in listings
            if (args.category == ALL_CATEGORIES or l.category.value == args.category)
            and (not args.zone or l.zone == args.zone)
            and filters.price_range[0] <= l.price <= filters.price_range[1]
        ]
        visible = apply_filters(listings, filters, args.sort)
    else:
        session = SessionStore(config.session_file)
        service = PropertyService(session, config.api)
        search = PropertySearch(
            service, category=args.category, filters=filters, sort_by=args.sort,
            zone=args.zone, defaults=config.search, debounce=config.debounce,
        )
        logger.info(f"Searching {config.api.base_url} with {search.server_params()}")
        search.refresh()
        if search.error:
            logger.error(search.error)
            sys.exit(1)
        visible = search.visible

    logger.info(f"{len(visible)} listings visible")

    rng = random.Random(args.seed)
    points = place_listings(visible, jitter_for(args.mobile, config.map), rng)
    clusters = cluster_points(points, radius_for(args.mobile, config.map))

    if args.json:
        print(json.dumps({
            "listings": [
                {"id": l.id, "title": l.title, "price": l.price, "zone": l.zone,
                 "furnishing": l.furnishing.value, "available_from": l.available_from}
                for l in visible
            ],
            "clusters": [
                {"center": list(c.center), "badge": c.badge, "tier": c.tier.name.lower(),
                 "listings": [l.id for l in c.listings]}
                for c in clusters
            ],
        }, indent=2, ensure_ascii=False))
        return

    for l in visible:
        print(f"  ${l.price:>7,}  {l.title:<40} {l.zone:<12} {l.furnishing.value:<15} {l.available_from}")
    print(f"\n🗺️  {len(clusters)} map markers:")
    for c in clusters:
        lat, lng = c.center
        label = c.listings[0].title if c.size == 1 else f"[{c.badge}] {c.tier.color}"
        print(f"  ({lat:.4f}, {lng:.4f})  {label}")


if __name__ == "__main__":
    main()
