"""Photon (OpenStreetMap) free-text address lookup."""

from __future__ import annotations

import logging
import threading
from typing import Any

from middle_housing.common.http import HttpClient, RetryConfig, TimeoutConfig
from middle_housing.common.logging import log_event
from middle_housing.common.models import Coordinate

LOGGER = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "https://photon.komoot.io/api/"


def _safe_float(value: object) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def extract_point_from_feature(feature: dict[str, Any] | None) -> Coordinate | None:
    if not isinstance(feature, dict):
        return None
    geometry = feature.get("geometry") or {}
    coordinates = geometry.get("coordinates") if isinstance(geometry, dict) else None
    if not isinstance(coordinates, (list, tuple)) or len(coordinates) < 2:
        return None
    # GeoJSON positions are [lng, lat].
    lng = _safe_float(coordinates[0])
    lat = _safe_float(coordinates[1])
    if lat is None or lng is None:
        return None
    if not (-90 <= lat <= 90 and -180 <= lng <= 180):
        return None
    return Coordinate(lat=lat, lng=lng)


class PhotonGeocoder:
    def __init__(
        self,
        http_client: HttpClient,
        *,
        endpoint: str = DEFAULT_ENDPOINT,
        city_suffix: str = "Seattle, WA",
        city_token: str = "seattle",
        timeout: TimeoutConfig | None = None,
    ) -> None:
        self.http_client = http_client
        self.endpoint = endpoint
        self.city_suffix = city_suffix
        self.city_token = city_token.lower()
        self.timeout = timeout

    @classmethod
    def from_config(cls, geocoder_config: dict, http_client: HttpClient | None = None) -> "PhotonGeocoder":
        timeout = TimeoutConfig(
            connect=float(geocoder_config["timeout"]["connect"]),
            read=float(geocoder_config["timeout"]["read"]),
        )
        client = http_client or HttpClient(
            timeout=timeout,
            retry=RetryConfig(max_attempts=int(geocoder_config["max_attempts"])),
            rate_per_sec=float(geocoder_config["rate_per_sec"]),
        )
        return cls(
            client,
            endpoint=geocoder_config["endpoint"],
            city_suffix=geocoder_config["city_suffix"],
            city_token=geocoder_config["city_token"],
            timeout=timeout,
        )

    def close(self) -> None:
        self.http_client.close()

    def build_query(self, address: str) -> str:
        cleaned = address.strip()
        if self.city_token in cleaned.lower():
            return cleaned
        return f"{cleaned}, {self.city_suffix}"

    def geocode(self, address: str, *, stop_event: threading.Event | None = None) -> Coordinate | None:
        """Resolve an address to the first candidate's point, or None when Photon has no match.

        HTTP and network failures propagate as ``HttpRequestError`` /
        ``requests.RequestException``. Setting ``stop_event`` stops retries.
        """
        query = self.build_query(address)
        payload = self.http_client.get_json(
            self.endpoint,
            params={"q": query, "limit": 1},
            timeout=self.timeout,
            stop_event=stop_event,
        )
        features = payload.get("features")
        if not isinstance(features, list) or not features:
            log_event(LOGGER, "no geocode candidates", level=logging.DEBUG, event="GEOCODE_EMPTY", address=address)
            return None
        return extract_point_from_feature(features[0])
