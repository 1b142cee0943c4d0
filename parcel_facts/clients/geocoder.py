"""US Census one-line address geocoder.

``GeoResolver.resolve`` turns free text into a canonical
``GeocodeResult``.

Failure contract:
    - Service answered but found nothing, answered with an HTTP error,
      answered with an unparseable or undecodable body, or redirected
      in a loop → ``MatchQuality.NO_MATCH``.
    - Service could not be reached (connection failure or timeout) →
      ``TransportError``, so callers can tell an outage from a bad
      address.

References:
    Census Geocoder API:
        https://geocoding.geo.census.gov/geocoder/Geocoding_Services_API.html
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from parcel_facts.core.constants import (
    DEFAULT_GEOCODER_BENCHMARK,
    DEFAULT_GEOCODER_URL,
    DEFAULT_REQUEST_TIMEOUT_S,
)
from parcel_facts.core.exceptions import TransportError
from parcel_facts.models.geo import (
    AddressComponents,
    GeocodeResult,
    MatchQuality,
    ModelValidationError,
)

logger = logging.getLogger(__name__)


class GeoResolver:
    """Resolve addresses against the Census one-line geocoder.

    Args:
        client: Shared async HTTP client.
        url: Geocoder endpoint.
        benchmark: Census benchmark (address vintage).
        timeout_s: Call timeout in seconds.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        url: str = DEFAULT_GEOCODER_URL,
        benchmark: str = DEFAULT_GEOCODER_BENCHMARK,
        timeout_s: float = DEFAULT_REQUEST_TIMEOUT_S,
    ) -> None:
        self._client = client
        self._url = url
        self._benchmark = benchmark
        self._timeout_s = timeout_s

    async def resolve(self, address_text: str) -> GeocodeResult:
        """Geocode *address_text*.

        Returns:
            The best match, or a ``no_match`` result.

        Raises:
            TransportError: If the geocoder is unreachable or times out.
        """
        address = (address_text or "").strip()
        if not address:
            logger.info("geocode skipped | reason=blank_address")
            return GeocodeResult.no_match(address)

        params = {"address": address, "benchmark": self._benchmark, "format": "json"}
        try:
            response = await self._client.get(self._url, params=params, timeout=self._timeout_s)
        except httpx.TimeoutException as exc:
            msg = f"Geocoder timed out after {self._timeout_s:.0f}s: {exc}"
            raise TransportError(self._url, msg) from exc
        except httpx.TransportError as exc:
            msg = f"Geocoder unreachable: {exc}"
            raise TransportError(self._url, msg) from exc
        except httpx.HTTPError as exc:
            logger.warning("geocode request failed | address=%s | error=%s", address, exc)
            return GeocodeResult.no_match(address)

        if response.is_error:
            logger.warning(
                "geocode failed | status=%d | address=%s",
                response.status_code,
                address,
            )
            return GeocodeResult.no_match(address)

        try:
            payload = response.json()
        except ValueError as exc:
            logger.warning("geocode response not JSON | address=%s | error=%s", address, exc)
            return GeocodeResult.no_match(address)

        result = parse_census_response(payload, address)
        logger.info(
            "geocode completed | quality=%s | address=%s | matched=%s",
            result.match_quality.value,
            address,
            result.standardized_address,
        )
        return result


def parse_census_response(payload: Any, address: str) -> GeocodeResult:
    """Convert a Census geocoder JSON payload into a ``GeocodeResult``.

    The first address match wins.  Any structural surprise degrades to
    ``no_match``.
    """
    try:
        matches = payload["result"]["addressMatches"]
    except (KeyError, TypeError):
        logger.warning("geocode payload missing result.addressMatches | address=%s", address)
        return GeocodeResult.no_match(address)

    if not isinstance(matches, list) or not matches:
        return GeocodeResult.no_match(address)

    match = matches[0]
    try:
        coords = match["coordinates"]
        lon = float(coords["x"])
        lat = float(coords["y"])
        result = GeocodeResult(
            lat=lat,
            lon=lon,
            standardized_address=str(match.get("matchedAddress") or address),
            match_quality=MatchQuality.EXACT,
            components=_components(match.get("addressComponents")),
        )
    except (KeyError, TypeError, ValueError, ModelValidationError) as exc:
        logger.warning("geocode match unusable | address=%s | error=%s", address, exc)
        return GeocodeResult.no_match(address)

    return result


def _components(raw: Any) -> AddressComponents | None:
    if not isinstance(raw, dict):
        return None
    street = " ".join(
        str(raw[key])
        for key in ("preDirection", "streetName", "suffixType", "suffixDirection")
        if raw.get(key)
    )
    return AddressComponents(
        street=street,
        city=str(raw.get("city") or ""),
        state=str(raw.get("state") or ""),
        zip=str(raw.get("zip") or ""),
    )
