"""Durable address -> coordinate cache shared across enrichment runs.

The cache is persisted in a small JSON key-value file. The entries live under
one namespace key as an association list::

    {"middle_housing_geocode_cache": [["123 Main St", {"lat": 47.6, "lng": -122.3}],
                                      ["9 Nowhere Rd", null]]}

``null`` records an address that was looked up and not found, so later runs do
not ask the geocoder again. Loading never fails: a missing or unreadable store
gives an empty cache. Flushing merges into whatever is on disk and logs, rather
than raises, storage errors.
"""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Any

from middle_housing.common.constants import CACHE_NAMESPACE
from middle_housing.common.errors import CacheStoreError
from middle_housing.common.fs import read_json, write_json
from middle_housing.common.logging import log_event
from middle_housing.common.models import NOT_FOUND, CacheResult, Coordinate, NotFound

LOGGER = logging.getLogger(__name__)


class JsonFileStore:
    """Key-value store backed by a single JSON object on disk."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def _read_all(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            payload = read_json(self.path)
        except (OSError, ValueError) as exc:
            raise CacheStoreError(f"Unreadable cache store {self.path}: {exc}") from exc
        if not isinstance(payload, dict):
            raise CacheStoreError(f"Cache store {self.path} does not hold a JSON object")
        return payload

    def get(self, key: str) -> Any | None:
        return self._read_all().get(key)

    def set(self, key: str, value: Any) -> None:
        try:
            payload = self._read_all()
        except CacheStoreError:
            payload = {}
        payload[key] = value
        try:
            write_json(self.path, payload)
        except (OSError, TypeError, ValueError) as exc:
            raise CacheStoreError(f"Could not write cache store {self.path}: {exc}") from exc


class MemoryStore:
    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        # Values go through JSON so tests see exactly what a file store would keep.
        self.data: dict[str, str] = {key: json.dumps(value) for key, value in (initial or {}).items()}

    def get(self, key: str) -> Any | None:
        raw = self.data.get(key)
        return None if raw is None else json.loads(raw)

    def set(self, key: str, value: Any) -> None:
        self.data[key] = json.dumps(value)


def cache_key(address: str | None) -> str:
    return (address or "").strip()


def _parse_entries(payload: Any) -> dict[str, CacheResult]:
    if payload is None:
        return {}
    if not isinstance(payload, list):
        raise CacheStoreError("Cache payload is not an association list")
    entries: dict[str, CacheResult] = {}
    for item in payload:
        if not isinstance(item, (list, tuple)) or len(item) != 2 or not isinstance(item[0], str):
            continue
        key = cache_key(item[0])
        if not key:
            continue
        if item[1] is None:
            entries[key] = NOT_FOUND
            continue
        coordinate = Coordinate.from_dict(item[1])
        if coordinate is not None:
            entries[key] = coordinate
    return entries


def _serialize_entries(entries: dict[str, CacheResult]) -> list[list[Any]]:
    out = []
    for key in sorted(entries):
        value = entries[key]
        out.append([key, None if isinstance(value, NotFound) else value.to_dict()])
    return out


class AddressCache:
    def __init__(self, store: JsonFileStore | MemoryStore, *, namespace: str = CACHE_NAMESPACE) -> None:
        self.store = store
        self.namespace = namespace
        self._entries: dict[str, CacheResult] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, address: object) -> bool:
        return isinstance(address, str) and cache_key(address) in self._entries

    def load(self) -> int:
        try:
            entries = _parse_entries(self.store.get(self.namespace))
        except CacheStoreError as exc:
            log_event(
                LOGGER,
                f"geocode cache unavailable, starting empty: {exc}",
                level=logging.WARNING,
                event="CACHE_LOAD_FAILED",
                status="error",
                error_code=exc.error_code,
            )
            entries = {}
        with self._lock:
            self._entries = entries
        log_event(LOGGER, "geocode cache loaded", event="CACHE_LOADED", status="ok", rows_in=len(entries))
        return len(entries)

    def lookup(self, address: str | None) -> CacheResult | None:
        key = cache_key(address)
        if not key:
            return None
        with self._lock:
            return self._entries.get(key)

    def merge(self, address: str, result: CacheResult) -> None:
        key = cache_key(address)
        if not key:
            return
        if not isinstance(result, (Coordinate, NotFound)):
            raise TypeError(f"Cache results must be Coordinate or NOT_FOUND, got {type(result).__name__}")
        with self._lock:
            self._entries[key] = result

    def snapshot(self) -> dict[str, CacheResult]:
        with self._lock:
            return dict(self._entries)

    def flush(self) -> bool:
        """Persist entries on top of what is already stored; returns False if the store failed."""
        try:
            try:
                persisted = _parse_entries(self.store.get(self.namespace))
            except CacheStoreError:
                persisted = {}
            persisted.update(self.snapshot())
            self.store.set(self.namespace, _serialize_entries(persisted))
        except CacheStoreError as exc:
            log_event(
                LOGGER,
                f"geocode cache flush failed, keeping results in memory: {exc}",
                level=logging.WARNING,
                event="CACHE_FLUSH_FAILED",
                status="error",
                error_code=exc.error_code,
            )
            return False
        log_event(LOGGER, "geocode cache flushed", event="CACHE_FLUSHED", status="ok", rows_out=len(persisted))
        return True
