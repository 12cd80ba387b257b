"""
Search state: what the user asked for, what the backend returned, and
what is currently visible.

Filter and zone edits are debounced so a burst of changes produces one
request. Each request gets a sequence token and only the newest one may
write results, so a slow stale response never overwrites a newer search.
"""

import logging
import threading
import time
from concurrent.futures import Executor
from typing import Any, Callable, Generic, Optional, TypeVar

from config import DebounceSettings, SearchDefaults
from filters import ALL_CATEGORIES, apply_filters, build_server_params
from models import FilterState, Listing
from services import ApiError, PropertyService, SearchPage

logger = logging.getLogger(__name__)

T = TypeVar("T")

LOAD_ERROR = "Failed to load properties. Please try again later."


class Debouncer(Generic[T]):
    """
    Holds the latest pushed value until no push has happened for `delay`
    seconds. Time comes from `clock` so tests can drive it.
    """

    def __init__(self, value: T, delay: float, clock: Callable[[], float] = time.monotonic):
        self.value = value
        self.delay = delay
        self.clock = clock
        self._pending: Optional[T] = None
        self._has_pending = False
        self._deadline = 0.0

    def push(self, value: T) -> None:
        self._pending = value
        self._has_pending = True
        self._deadline = self.clock() + self.delay

    def poll(self) -> bool:
        """Commit the pending value if its quiet period has passed."""
        if self._has_pending and self.clock() >= self._deadline:
            self.value = self._pending
            self._pending = None
            self._has_pending = False
            return True
        return False

    def flush(self) -> bool:
        """Commit the pending value immediately."""
        if not self._has_pending:
            return False
        self._deadline = self.clock()
        return self.poll()

    @property
    def pending(self) -> bool:
        return self._has_pending


class PropertySearch:
    """State container for the listing browser."""

    def __init__(
        self,
        service: PropertyService,
        category: str = ALL_CATEGORIES,
        filters: Optional[FilterState] = None,
        sort_by: str = "newest",
        zone: str = "",
        defaults: Optional[SearchDefaults] = None,
        debounce: Optional[DebounceSettings] = None,
        clock: Callable[[], float] = time.monotonic,
        executor: Optional[Executor] = None,
    ):
        self.service = service
        self.defaults = defaults or SearchDefaults()
        debounce = debounce or DebounceSettings()
        self.executor = executor

        self.category = category
        self.sort_by = sort_by
        self._filters = Debouncer(filters or self._default_filters(), debounce.filters, clock)
        self._zone = Debouncer(zone, debounce.zone, clock)

        self.listings: list[Listing] = []
        self.loading = False
        self.error: Optional[str] = None
        self.page = 1
        self.has_more = True

        self._lock = threading.Lock()
        self._issued = 0
        self._last_params: Optional[dict] = None

    def _default_filters(self) -> FilterState:
        return FilterState(price_range=(self.defaults.min_price, self.defaults.max_price))

    # ── Committed (debounced) inputs ───────────────────────────────────────

    @property
    def filters(self) -> FilterState:
        return self._filters.value

    @property
    def zone(self) -> str:
        return self._zone.value

    @property
    def visible(self) -> list[Listing]:
        """Listings after client-side filtering and sorting."""
        return apply_filters(self.listings, self.filters, self.sort_by)

    def server_params(self, page: int = 1) -> dict:
        return build_server_params(self.category, self.filters, self.zone, page, self.defaults)

    # ── Setters ────────────────────────────────────────────────────────────

    def set_filters(self, filters: FilterState) -> None:
        self._filters.push(filters)

    def set_zone(self, zone: str) -> None:
        self._zone.push(zone)

    def set_category(self, category: str) -> None:
        self.category = category

    def set_sort_by(self, sort_by: str) -> None:
        # Sorting is client-side only
        self.sort_by = sort_by

    def clear_filters(self) -> None:
        self.category = ALL_CATEGORIES
        self.sort_by = self.defaults.sort_by
        self._filters.push(self._default_filters())
        self._filters.flush()
        self._zone.push("")
        self._zone.flush()

    # ── Driving the search ─────────────────────────────────────────────────

    def tick(self):
        """
        Commit settled edits and refetch if the server query changed.

        Returns the fetch result (or Future when an executor is set), or
        None when nothing needed fetching.
        """
        self._filters.poll()
        self._zone.poll()
        if self.server_params() == self._last_params:
            return None
        return self.refresh()

    def refresh(self):
        """Reload page 1 with the current committed query."""
        return self._start(self.server_params(page=1), append=False)

    def load_more(self):
        if self.loading or not self.has_more:
            return None
        return self._start(self.server_params(page=self.page + 1), append=True)

    def _start(self, params: dict, append: bool):
        with self._lock:
            self._issued += 1
            token = self._issued
            self.loading = True
            self.error = None
            self._last_params = {**params, "page": 1}
        logger.info(f"Fetching listings #{token}: {params}")

        if self.executor is None:
            return self._run(token, params, append)
        return self.executor.submit(self._run, token, params, append)

    def _run(self, token: int, params: dict, append: bool) -> bool:
        try:
            result: Any = self.service.search(params)
        except ApiError as e:
            result = e
        except Exception as e:
            # loading must clear whatever went wrong
            logger.exception(f"Unexpected error fetching listings #{token}")
            result = e
        return self.complete(token, result, append)

    def complete(self, token: int, result, append: bool = False) -> bool:
        """
        Apply a finished fetch. Returns False when a newer fetch has been
        issued since, in which case the result is dropped.
        """
        with self._lock:
            if token != self._issued:
                logger.info(f"Discarding stale response #{token} (latest #{self._issued})")
                return False
            self.loading = False

            if isinstance(result, Exception):
                logger.error(f"Failed to fetch properties: {result}")
                self.error = LOAD_ERROR
                if not append:
                    self.listings = []
                return True

            page: SearchPage = result
            if append:
                self.listings = self.listings + page.listings
            else:
                self.listings = list(page.listings)
            self.page = page.current
            self.has_more = page.has_more
            return True
