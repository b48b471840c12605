"""Data models used across the pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Union

from middle_housing.common.constants import OTHER_REMODEL


@dataclass(frozen=True)
class Coordinate:
    lat: float
    lng: float

    def to_dict(self) -> dict[str, float]:
        return {"lat": self.lat, "lng": self.lng}

    @classmethod
    def from_dict(cls, payload: Any) -> "Coordinate | None":
        if not isinstance(payload, dict):
            return None
        try:
            return cls(lat=float(payload["lat"]), lng=float(payload["lng"]))
        except (KeyError, TypeError, ValueError):
            return None


class NotFound:
    """Cached marker for an address that was looked up and could not be resolved."""

    _instance: "NotFound | None" = None

    def __new__(cls) -> "NotFound":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NOT_FOUND"

    def __reduce__(self):
        return (NotFound, ())


NOT_FOUND = NotFound()

CacheResult = Union[Coordinate, NotFound]


@dataclass(frozen=True)
class Excluded:
    reason: str | None = None

    is_middle_housing = False
    housing_type = OTHER_REMODEL

    @property
    def reasons(self) -> tuple[str, ...]:
        return ()


@dataclass(frozen=True)
class Included:
    housing_type: str
    reasons: tuple[str, ...] = ()

    is_middle_housing = True


Verdict = Union[Excluded, Included]


@dataclass(frozen=True)
class ClassifiedRecord:
    source: Mapping[str, str]
    verdict: Verdict
    address: str | None = None

    @classmethod
    def build(cls, source: Mapping[str, str], verdict: Verdict, address: str | None) -> "ClassifiedRecord":
        # Read-only view over the caller's row; the row itself is not copied.
        view = source if isinstance(source, MappingProxyType) else MappingProxyType(source)
        return cls(source=view, verdict=verdict, address=address or None)

    @property
    def is_middle_housing(self) -> bool:
        return self.verdict.is_middle_housing

    @property
    def housing_type(self) -> str:
        return self.verdict.housing_type

    @property
    def reasons(self) -> tuple[str, ...]:
        return self.verdict.reasons

    @property
    def notes(self) -> str:
        if isinstance(self.verdict, Excluded):
            return f"Excluded: {self.verdict.reason}" if self.verdict.reason else ""
        return ", ".join(self.verdict.reasons)


@dataclass(frozen=True)
class EnrichedRecord:
    record: ClassifiedRecord
    coordinate: Coordinate | None = None
    coordinate_origin: str | None = None

    def with_coordinate(self, coordinate: Coordinate | None, origin: str) -> "EnrichedRecord":
        """Return a copy carrying ``coordinate`` unless one was already assigned."""
        if self.coordinate is not None or coordinate is None:
            return self
        return EnrichedRecord(record=self.record, coordinate=coordinate, coordinate_origin=origin)

    @property
    def address(self) -> str | None:
        return self.record.address

    @property
    def is_middle_housing(self) -> bool:
        return self.record.is_middle_housing

    @property
    def housing_type(self) -> str:
        return self.record.housing_type


@dataclass(frozen=True)
class MergeEvent:
    batch_index: int
    completed: int
    total: int
    resolved: dict[int, Coordinate] = field(default_factory=dict)
    not_found: tuple[str, ...] = ()
    cancelled: bool = False

    @property
    def progress(self) -> float:
        if self.total == 0:
            return 1.0
        return self.completed / self.total
