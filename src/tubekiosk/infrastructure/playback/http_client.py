"""HTTP client for the selection server (player side)."""

from __future__ import annotations

import httpx
import structlog

from tubekiosk.domain.entities.catalog import NextItem
from tubekiosk.domain.errors import SelectionUnavailableError

log = structlog.get_logger(__name__)


class HttpNextItemClient:
    """Implements ``NextItemClientPort`` against ``/api/next`` and ``/api/played``.

    - 200 -> ``NextItem``
    - 404 -> ``None`` (nothing eligible right now)
    - anything else, or no connection -> ``SelectionUnavailableError``
    """

    def __init__(self, *, http_client: httpx.AsyncClient) -> None:
        self._http = http_client

    @staticmethod
    def _error_message(resp: httpx.Response) -> str:
        try:
            data = resp.json()
        except ValueError:
            return resp.text[:200]
        if isinstance(data, dict) and data.get("error"):
            return str(data["error"])
        return resp.reason_phrase

    async def next_item(self) -> NextItem | None:
        try:
            resp = await self._http.get("/api/next")
        except httpx.HTTPError as exc:
            raise SelectionUnavailableError(f"server unreachable: {exc}") from exc

        if resp.status_code == 404:
            log.info("server_has_no_video", detail=self._error_message(resp))
            return None
        if resp.status_code != 200:
            raise SelectionUnavailableError(
                f"server error {resp.status_code}: {self._error_message(resp)}"
            )

        try:
            return NextItem.from_payload(resp.json())
        except (ValueError, KeyError, TypeError) as exc:
            raise SelectionUnavailableError(f"malformed /api/next payload: {exc}") from exc

    async def mark_played(self, item_id: str) -> None:
        try:
            resp = await self._http.post("/api/played", json={"videoId": item_id})
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            raise SelectionUnavailableError(f"mark played failed: {exc}") from exc
