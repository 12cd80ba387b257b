"""
Configuration for the Rental Finder client.
Point it at your marketplace backend via environment variables.

Environment:
  - RENTAL_API_URL: base URL of the REST backend (default http://localhost:5000/api)
  - RENTAL_API_TIMEOUT: request timeout in seconds
  - RENTAL_SESSION_FILE: where the session token and favorites cache live
"""

import os
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class APISettings:
    """Backend location - set via environment variables or fill in directly."""
    base_url: str = os.getenv("RENTAL_API_URL", "http://localhost:5000/api")
    timeout: float = float(os.getenv("RENTAL_API_TIMEOUT", "10"))


@dataclass
class SearchDefaults:
    """Unrestricted search: bounds equal to these are never sent to the server."""
    min_price: int = 3000
    max_price: int = 50000
    page_size: int = 50
    sort_by: str = "newest"


@dataclass
class DebounceSettings:
    """Quiet periods (seconds) before a change reaches the network."""
    filters: float = 0.5
    zone: float = 0.3
    application_progress: float = 2.0


@dataclass
class MapSettings:
    """
    Clustering radii and jitter spans, in coordinate degrees.
    ~0.01 degree is about 1km in Mexico City.
    """
    desktop_radius: float = 0.012
    mobile_radius: float = 0.008
    desktop_jitter: float = 0.005
    mobile_jitter: float = 0.01


@dataclass
class AppConfig:
    """Top-level configuration."""
    api: APISettings = field(default_factory=APISettings)
    search: SearchDefaults = field(default_factory=SearchDefaults)
    debounce: DebounceSettings = field(default_factory=DebounceSettings)
    map: MapSettings = field(default_factory=MapSettings)

    # Advisory cache for the token and favorites; None keeps it in memory only
    session_file: Optional[str] = os.getenv(
        "RENTAL_SESSION_FILE", os.path.expanduser("~/.rental-finder/session.json")
    )

    # Upload limits
    max_upload_bytes: int = 10 * 1024 * 1024
