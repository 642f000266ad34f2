"""HTTP client the map viewer uses to talk to the parcel API.

One request per call with a fixed timeout. Failures are terminal: there is no
retry, and a caller that fires overlapping requests keeps whichever response
it handles last.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import quote

import requests

from county_parcels.config import get_settings
from county_parcels.errors import ParcelApiError
from county_parcels.logs import log_event


DEFAULT_TIMEOUT_S = 10.0

logger = logging.getLogger("parcels.map")


class ParcelApiClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        timeout: float = DEFAULT_TIMEOUT_S,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = (base_url or get_settings().api_url).rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update({"Accept": "application/json"})

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        json_body: Optional[Mapping[str, Any]] = None,
    ) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            resp = self._session.request(
                method, url, params=params, json=json_body, timeout=self.timeout
            )
        except requests.RequestException as e:
            log_event(logger, "api_request_failed", level=logging.WARNING, path=path, error=type(e).__name__)
            raise ParcelApiError("Parcel API request failed", cause=e) from e

        try:
            payload = resp.json()
        except ValueError as e:
            raise ParcelApiError(
                f"Parcel API returned a non-JSON response ({resp.status_code})",
                status_code=resp.status_code,
                cause=e,
            ) from e

        if not isinstance(payload, dict):
            raise ParcelApiError("Parcel API returned an unexpected payload", status_code=resp.status_code)
        if resp.status_code >= 400 or not payload.get("success"):
            message = str(payload.get("error") or f"Parcel API error ({resp.status_code})")
            log_event(logger, "api_error", level=logging.WARNING, path=path, status=resp.status_code)
            raise ParcelApiError(message, status_code=resp.status_code)
        return payload

    def search(self, query: str, mode: str = "parno") -> List[Dict[str, Any]]:
        payload = self._request("GET", "/parcels/search", params={"q": query, "type": mode})
        return list(payload.get("data") or [])

    def get_details(self, parcel_id: int | str) -> Dict[str, Any]:
        payload = self._request("GET", f"/parcels/{parcel_id}")
        return dict(payload.get("data") or {})

    def get_by_parno(self, parno: str) -> Optional[Dict[str, Any]]:
        """Exact parcel number lookup; None when the API reports no such parcel."""
        try:
            payload = self._request("GET", f"/parcels/by-parno/{quote(parno, safe='')}")
        except ParcelApiError as e:
            if e.http_status == 404:
                return None
            raise
        return dict(payload.get("data") or {})

    def get_assessments(self, parcel_id: int | str) -> List[Dict[str, Any]]:
        payload = self._request("GET", f"/parcels/{parcel_id}/assessments")
        return list(payload.get("data") or [])

    def get_owners(self, parcel_id: int | str) -> List[Dict[str, Any]]:
        payload = self._request("GET", f"/parcels/{parcel_id}/owners")
        return list(payload.get("data") or [])

    def filter_options(self) -> Dict[str, Any]:
        payload = self._request("GET", "/parcels/filter-options")
        return dict(payload.get("data") or {})

    def advanced_search(self, filters: Mapping[str, Any]) -> List[Dict[str, Any]]:
        body = {k: v for k, v in filters.items() if v not in (None, "")}
        payload = self._request("POST", "/parcels/advanced-search", json_body=body)
        return list(payload.get("data") or [])

    def close(self) -> None:
        self._session.close()
