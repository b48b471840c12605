"""Batch geocoding of unresolved permit addresses.

A run collects the distinct addresses of records that still lack a
coordinate, skips the ones the cache already answers, and resolves the rest in
small concurrent batches separated by a fixed delay. After each batch the
cache is flushed and a ``MergeEvent`` is yielded so callers can show partial
results straight away.

Cancellation is cooperative. The token is checked before every batch and
around every request; a request that is already in flight finishes, but its
answer is dropped if the token was set before it returned, and the address
stays unresolved for a later run. Retries of a request stop as soon as the
token is set.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterator, Protocol, Sequence

import requests

from middle_housing.common.http import HttpRequestError
from middle_housing.common.logging import log_event
from middle_housing.common.models import NOT_FOUND, CacheResult, Coordinate, EnrichedRecord, MergeEvent
from middle_housing.geocode.cache import AddressCache, cache_key

LOGGER = logging.getLogger(__name__)

_ABANDONED = object()


class Geocoder(Protocol):
    def geocode(self, address: str, *, stop_event: threading.Event | None = None) -> Coordinate | None: ...


class CancelToken:
    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def event(self) -> threading.Event:
        return self._event

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


def _chunked(values: list[str], size: int):
    for i in range(0, len(values), size):
        yield values[i : i + size]


def build_work_list(
    records: Sequence[EnrichedRecord],
    cache: AddressCache,
    *,
    min_address_length: int,
) -> list[str]:
    """Distinct trimmed addresses, in first-seen order, that still need a lookup."""
    seen: set[str] = set()
    work: list[str] = []
    for record in records:
        if record.coordinate is not None:
            continue
        key = cache_key(record.address)
        if len(key) < max(min_address_length, 1) or key in seen:
            continue
        seen.add(key)
        if cache.lookup(key) is not None:
            continue
        work.append(key)
    return work


class GeocodeScheduler:
    def __init__(
        self,
        geocoder: Geocoder,
        cache: AddressCache,
        *,
        batch_size: int = 5,
        batch_delay_seconds: float = 0.15,
        min_address_length: int = 5,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if batch_size <= 0:
            raise ValueError("batch_size must be > 0")
        self.geocoder = geocoder
        self.cache = cache
        self.batch_size = batch_size
        self.batch_delay_seconds = batch_delay_seconds
        self.min_address_length = min_address_length
        self.sleep = sleep
        self._active = False
        self._active_lock = threading.Lock()

    @classmethod
    def from_config(cls, scheduler_config: dict, geocoder: Geocoder, cache: AddressCache) -> "GeocodeScheduler":
        return cls(
            geocoder,
            cache,
            batch_size=int(scheduler_config["batch_size"]),
            batch_delay_seconds=float(scheduler_config["batch_delay_seconds"]),
            min_address_length=int(scheduler_config["min_address_length"]),
        )

    @property
    def is_running(self) -> bool:
        return self._active

    def _claim(self) -> bool:
        with self._active_lock:
            if self._active:
                return False
            self._active = True
            return True

    def _release(self) -> None:
        with self._active_lock:
            self._active = False

    def _resolve_one(self, address: str, cancel_token: CancelToken) -> object:
        if cancel_token.cancelled:
            return _ABANDONED
        started = time.monotonic()
        try:
            coordinate = self.geocoder.geocode(address, stop_event=cancel_token.event)
        except (HttpRequestError, requests.RequestException) as exc:
            log_event(
                LOGGER,
                f"geocode lookup failed: {exc}",
                level=logging.WARNING,
                event="GEOCODE_FAILED",
                status="error",
                address=address,
                error_code=getattr(exc, "error_code", "REQUEST_ERROR"),
            )
            coordinate = None
        if cancel_token.cancelled:
            return _ABANDONED
        log_event(
            LOGGER,
            "geocode lookup finished",
            level=logging.DEBUG,
            event="GEOCODE_DONE",
            status="ok" if coordinate is not None else "not_found",
            address=address,
            duration_ms=int((time.monotonic() - started) * 1000),
        )
        return coordinate if coordinate is not None else NOT_FOUND

    def _resolve_batch(
        self,
        pool: ThreadPoolExecutor,
        batch: list[str],
        cancel_token: CancelToken,
    ) -> dict[str, CacheResult]:
        futures = {address: pool.submit(self._resolve_one, address, cancel_token) for address in batch}
        outcomes: dict[str, CacheResult] = {}
        for address, future in futures.items():
            outcome = future.result()
            if outcome is not _ABANDONED:
                outcomes[address] = outcome
        return outcomes

    def run(self, records: Sequence[EnrichedRecord], cancel_token: CancelToken | None = None) -> Iterator[MergeEvent]:
        """Resolve missing coordinates for ``records``, yielding one event per batch.

        Iterating a second run while another is still active yields nothing.
        """
        if not self._claim():
            log_event(LOGGER, "geocode run already active, ignoring start", event="RUN_SKIPPED", status="skipped")
            return
        token = cancel_token or CancelToken()
        try:
            yield from self._run(records, token)
        finally:
            self._release()

    def _run(self, records: Sequence[EnrichedRecord], cancel_token: CancelToken) -> Iterator[MergeEvent]:
        work = build_work_list(records, self.cache, min_address_length=self.min_address_length)
        total = len(work)
        log_event(LOGGER, "geocode run start", event="RUN_START", status="ok", total=total, rows_in=len(records))
        if not work:
            return

        indexes_by_address: dict[str, list[int]] = {}
        for idx, record in enumerate(records):
            if record.coordinate is None:
                indexes_by_address.setdefault(cache_key(record.address), []).append(idx)

        completed = 0
        with ThreadPoolExecutor(max_workers=self.batch_size, thread_name_prefix="geocode") as pool:
            for batch_index, batch in enumerate(_chunked(work, self.batch_size)):
                if batch_index > 0 and self.batch_delay_seconds > 0:
                    self.sleep(self.batch_delay_seconds)
                if cancel_token.cancelled:
                    break

                outcomes = self._resolve_batch(pool, batch, cancel_token)
                resolved: dict[int, Coordinate] = {}
                not_found: list[str] = []
                for address, outcome in outcomes.items():
                    self.cache.merge(address, outcome)
                    if isinstance(outcome, Coordinate):
                        for idx in indexes_by_address.get(address, []):
                            resolved[idx] = outcome
                    else:
                        not_found.append(address)
                if outcomes:
                    self.cache.flush()

                # Addresses abandoned on cancel are not progress.
                completed += len(outcomes)
                cancelled = cancel_token.cancelled
                log_event(
                    LOGGER,
                    "geocode batch done",
                    event="BATCH_END",
                    status="cancelled" if cancelled else "ok",
                    batch=batch_index,
                    completed=completed,
                    total=total,
                    rows_out=len(resolved),
                )
                yield MergeEvent(
                    batch_index=batch_index,
                    completed=completed,
                    total=total,
                    resolved=resolved,
                    not_found=tuple(not_found),
                    cancelled=cancelled,
                )
                if cancelled:
                    break

        log_event(
            LOGGER,
            "geocode run end",
            event="RUN_END",
            status="cancelled" if cancel_token.cancelled else "ok",
            completed=completed,
            total=total,
        )
