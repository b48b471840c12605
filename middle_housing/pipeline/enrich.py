"""Coordinate enrichment entry point for classified permits."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator, Mapping, Sequence

from middle_housing.classify.columns import ColumnMap, presupplied_coordinate
from middle_housing.common.logging import log_event
from middle_housing.common.models import ClassifiedRecord, Coordinate, EnrichedRecord, MergeEvent
from middle_housing.geocode.cache import AddressCache
from middle_housing.geocode.scheduler import CancelToken, GeocodeScheduler

LOGGER = logging.getLogger(__name__)

ORIGIN_PRESUPPLIED = "presupplied"
ORIGIN_CACHE = "cache"
ORIGIN_GEOCODED = "geocoded"


@dataclass(frozen=True)
class EnrichmentUpdate:
    event: MergeEvent
    records: list[EnrichedRecord]

    @property
    def progress(self) -> float:
        return self.event.progress


def seed_records(
    classified: Sequence[ClassifiedRecord],
    cache: AddressCache,
    *,
    columns: ColumnMap | None = None,
    bbox: dict | None = None,
) -> list[EnrichedRecord]:
    """Attach pre-supplied coordinates first, then whatever earlier runs cached."""
    seeded: list[EnrichedRecord] = []
    presupplied_count = 0
    cached_count = 0
    for record in classified:
        enriched = EnrichedRecord(record=record)
        if columns is not None and bbox is not None:
            enriched = enriched.with_coordinate(presupplied_coordinate(record.source, columns, bbox), ORIGIN_PRESUPPLIED)
            if enriched.coordinate is not None:
                presupplied_count += 1
        if enriched.coordinate is None:
            cached = cache.lookup(record.address)
            if isinstance(cached, Coordinate):
                enriched = enriched.with_coordinate(cached, ORIGIN_CACHE)
                cached_count += 1
        seeded.append(enriched)

    log_event(
        LOGGER,
        f"seeded coordinates: {presupplied_count} pre-supplied, {cached_count} cached",
        stage="enrich",
        event="SEED_END",
        status="ok",
        rows_in=len(classified),
        rows_out=presupplied_count + cached_count,
    )
    return seeded


def apply_merge_event(records: Sequence[EnrichedRecord], event: MergeEvent) -> list[EnrichedRecord]:
    merged = list(records)
    for idx, coordinate in event.resolved.items():
        if 0 <= idx < len(merged):
            merged[idx] = merged[idx].with_coordinate(coordinate, ORIGIN_GEOCODED)
    return merged


def run_enrichment(
    records: Sequence[EnrichedRecord],
    scheduler: GeocodeScheduler,
    cancel_token: CancelToken | None = None,
    *,
    only_middle_housing: bool = True,
) -> Iterator[EnrichmentUpdate]:
    """Geocode what is still missing and yield the merged record list after each batch.

    The caller owns the token and decides how long to keep iterating.
    """
    current = list(records)
    if only_middle_housing:
        positions = [idx for idx, record in enumerate(current) if record.is_middle_housing]
    else:
        positions = list(range(len(current)))
    candidates = [current[idx] for idx in positions]

    for event in scheduler.run(candidates, cancel_token):
        translated = MergeEvent(
            batch_index=event.batch_index,
            completed=event.completed,
            total=event.total,
            resolved={positions[idx]: coordinate for idx, coordinate in event.resolved.items()},
            not_found=event.not_found,
            cancelled=event.cancelled,
        )
        current = apply_merge_event(current, translated)
        yield EnrichmentUpdate(event=translated, records=current)
