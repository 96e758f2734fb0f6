"""
Places client — thin async wrapper over the Google Places legacy web service.

Three calls, no retries and no state between calls beyond the pooled
httpx.AsyncClient:
  nearby_search  — one page of results plus an optional continuation token
  place_details  — extended fields for one place
  fetch_photo    — raw image bytes for one photo reference

Retry, pagination and concurrency policy belong to the enrichment pipeline.
"""

from __future__ import annotations

import asyncio
import base64
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx

logger = logging.getLogger(__name__)

PLACES_BASE_URL = "https://maps.googleapis.com/maps/api/place"

DETAILS_FIELDS = (
    "editorial_summary",
    "reviews",
    "formatted_phone_number",
    "international_phone_number",
    "website",
    "opening_hours",
    "business_status",
    "photos",
)

PHOTO_MAX_WIDTH = 900
PHOTO_TIMEOUT_SECONDS = 10.0

_OK_STATUSES = ("OK", "ZERO_RESULTS")


class PlacesError(Exception):
    """Raised on a transport failure, non-2xx response or provider error status."""


class PlacesTimeoutError(PlacesError):
    """Raised when a provider call exceeds its time budget."""


@dataclass
class NearbyPage:
    """One page of nearby-search results."""

    results: list[dict[str, Any]] = field(default_factory=list)
    next_page_token: Optional[str] = None


@dataclass
class PhotoPayload:
    content: bytes
    content_type: str

    def as_data_url(self) -> str:
        encoded = base64.b64encode(self.content).decode("ascii")
        return f"data:{self.content_type};base64,{encoded}"


class PlacesClient:
    """
    Owns one pooled httpx.AsyncClient, created lazily on first use.
    Pass `transport` to route requests elsewhere (tests use httpx.MockTransport).
    """

    def __init__(
        self,
        api_key: Optional[str],
        timeout: float = 20.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        base_url: str = PLACES_BASE_URL,
    ) -> None:
        self.api_key = api_key
        self.timeout = timeout
        self.base_url = base_url.rstrip("/")
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                transport=self._transport,
                follow_redirects=True,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    # ── Calls ──────────────────────────────────────────────────────────────────

    async def nearby_search(
        self,
        lat: float,
        lon: float,
        radius: int,
        category: str,
        page_token: Optional[str] = None,
    ) -> NearbyPage:
        """Fetch one page. A page token replaces the location/radius/type query."""
        if page_token:
            params: dict[str, Any] = {"pagetoken": page_token}
        else:
            params = {"location": f"{lat},{lon}", "radius": radius, "type": category}

        data = await self._get_json("/nearbysearch/json", params)
        return NearbyPage(
            results=list(data.get("results") or []),
            next_page_token=data.get("next_page_token") or None,
        )

    async def place_details(self, place_id: str) -> dict[str, Any]:
        data = await self._get_json(
            "/details/json",
            {"place_id": place_id, "fields": ",".join(DETAILS_FIELDS)},
        )
        return data.get("result") or {}

    async def fetch_photo(
        self,
        photo_reference: str,
        max_width: int = PHOTO_MAX_WIDTH,
        max_height: Optional[int] = None,
        timeout: float = PHOTO_TIMEOUT_SECONDS,
    ) -> PhotoPayload:
        """Download one photo. The whole call, redirects included, must finish within `timeout`."""
        params: dict[str, Any] = {"photo_reference": photo_reference, "maxwidth": max_width}
        if max_height:
            params["maxheight"] = max_height

        try:
            response = await asyncio.wait_for(self._get("/photo", params), timeout=timeout)
        except asyncio.TimeoutError as exc:
            raise PlacesTimeoutError(f"photo fetch exceeded {timeout}s") from exc

        content_type = response.headers.get("content-type", "image/jpeg").split(";")[0].strip()
        return PhotoPayload(content=response.content, content_type=content_type or "image/jpeg")

    # ── Transport ──────────────────────────────────────────────────────────────

    async def _get(self, path: str, params: dict[str, Any]) -> httpx.Response:
        if not self.api_key:
            raise PlacesError("Google Places API key is not configured")

        try:
            response = await self._get_client().get(
                f"{self.base_url}{path}", params={**params, "key": self.api_key}
            )
        except httpx.TimeoutException as exc:
            raise PlacesTimeoutError(f"{path} timed out") from exc
        except httpx.HTTPError as exc:
            raise PlacesError(f"{path} request failed: {exc}") from exc

        if response.status_code >= 400:
            raise PlacesError(f"{path} returned HTTP {response.status_code}")
        return response

    async def _get_json(self, path: str, params: dict[str, Any]) -> dict[str, Any]:
        response = await self._get(path, params)
        try:
            data = response.json()
        except ValueError as exc:
            raise PlacesError(f"{path} returned invalid JSON") from exc

        status = data.get("status", "OK")
        if status not in _OK_STATUSES:
            logger.warning(
                "Places %s status=%s message=%s", path, status, data.get("error_message")
            )
            raise PlacesError(f"{path} returned status {status}")
        return data
