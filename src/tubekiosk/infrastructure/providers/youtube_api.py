"""YouTube Data API v3 provider (search.list -> videos.list)."""

from __future__ import annotations

import json
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import httpx
import structlog

from tubekiosk.domain.entities.catalog import CandidateItem
from tubekiosk.domain.errors import ProviderError, SourceNotFoundError

log = structlog.get_logger(__name__)

_BASE_URL = "https://www.googleapis.com/youtube/v3"
# search.list rejects maxResults above 50.
_MAX_PAGE_SIZE = 50

_ISO_DURATION = re.compile(
    r"^P(?:(?P<days>\d+)D)?"
    r"(?:T(?:(?P<hours>\d+)H)?(?:(?P<minutes>\d+)M)?(?:(?P<seconds>\d+)S)?)?$"
)


def parse_iso8601_duration(value: Any) -> int | None:
    """``PT1H2M3S`` -> 3723. Unparseable input yields None."""
    if not isinstance(value, str):
        return None
    match = _ISO_DURATION.match(value.strip())
    if match is None:
        return None
    parts = {key: int(raw) if raw else 0 for key, raw in match.groupdict().items()}
    return (
        parts["days"] * 86_400
        + parts["hours"] * 3_600
        + parts["minutes"] * 60
        + parts["seconds"]
    )


def parse_timestamp(value: Any) -> datetime | None:
    """RFC 3339 / ISO 8601 timestamp -> aware UTC datetime."""
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def resolve_api_key(api_key: str | None, credentials_path: Path) -> str | None:
    """Configured key, else ``YOUTUBE_API_KEY`` from the credentials file."""
    if api_key:
        return api_key
    try:
        data = json.loads(credentials_path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return None
    except (OSError, ValueError) as exc:
        log.error(
            "youtube_credentials_unreadable", path=str(credentials_path), error=str(exc)
        )
        return None
    key = data.get("YOUTUBE_API_KEY") if isinstance(data, dict) else None
    return str(key) if key else None


def _error_reason(resp: httpx.Response) -> str:
    """Google's machine-readable reason, e.g. ``quotaExceeded``."""
    try:
        errors = resp.json()["error"]["errors"]
        return str(errors[0].get("reason", ""))
    except (ValueError, KeyError, IndexError, TypeError, AttributeError):
        return ""


class YouTubeApiProvider:
    """Recent uploads of a channel with duration, views and embeddability.

    Implements ``CandidateProviderPort``.
    """

    name = "youtube_api"

    def __init__(
        self,
        *,
        http_client: httpx.AsyncClient,
        api_key: str | None,
    ) -> None:
        self._http = http_client
        self._api_key = api_key

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _get(self, endpoint: str, **params: Any) -> dict[str, Any]:
        """GET an API endpoint; every failure becomes ``ProviderError``."""
        url = f"{_BASE_URL}/{endpoint}"
        try:
            resp = await self._http.get(url, params={**params, "key": self._api_key})
        except httpx.HTTPError as exc:
            log.warning("youtube_api_network_error", endpoint=endpoint, error=str(exc))
            raise ProviderError(f"youtube api unreachable: {exc}") from exc

        if resp.status_code >= 400:
            reason = _error_reason(resp)
            log.warning(
                "youtube_api_http_error",
                endpoint=endpoint,
                status=resp.status_code,
                reason=reason,
            )
            message = f"youtube api {endpoint} failed: {resp.status_code} {reason}".strip()
            if resp.status_code == 404:
                raise SourceNotFoundError(message)
            raise ProviderError(message)

        try:
            data = resp.json()
        except ValueError as exc:
            raise ProviderError(f"youtube api {endpoint}: invalid JSON") from exc
        if not isinstance(data, dict):
            raise ProviderError(f"youtube api {endpoint}: unexpected payload")
        return data

    @staticmethod
    def _to_candidate(video: dict[str, Any], source_id: str) -> CandidateItem:
        snippet = video.get("snippet") or {}
        details = video.get("contentDetails") or {}
        statistics = video.get("statistics") or {}
        status = video.get("status") or {}

        raw_views = statistics.get("viewCount")
        try:
            view_count = int(raw_views) if raw_views is not None else None
        except (TypeError, ValueError):
            view_count = None

        embeddable = status.get("embeddable")
        return CandidateItem(
            id=str(video["id"]),
            title=str(snippet.get("title") or ""),
            source_id=str(snippet.get("channelId") or source_id),
            published=parse_timestamp(snippet.get("publishedAt")),
            duration_seconds=parse_iso8601_duration(details.get("duration")),
            view_count=view_count,
            embeddable=embeddable if isinstance(embeddable, bool) else None,
        )

    # ------------------------------------------------------------------
    # Public API (CandidateProviderPort)
    # ------------------------------------------------------------------

    async def fetch(self, source_id: str, max_results: int) -> list[CandidateItem]:
        if not self._api_key:
            raise ProviderError("youtube api key not configured")

        page_size = max(1, min(int(max_results), _MAX_PAGE_SIZE))
        search = await self._get(
            "search",
            part="snippet",
            channelId=source_id,
            maxResults=page_size,
            order="date",
            type="video",
        )
        ids = [
            item["id"]["videoId"]
            for item in search.get("items") or []
            if isinstance(item.get("id"), dict) and item["id"].get("videoId")
        ]
        if not ids:
            log.info("youtube_api_no_uploads", channel=source_id)
            return []

        details = await self._get(
            "videos",
            part="snippet,contentDetails,statistics,status",
            id=",".join(ids),
        )
        items = [
            self._to_candidate(video, source_id)
            for video in details.get("items") or []
            if video.get("id")
        ]
        log.debug("youtube_api_fetched", channel=source_id, items=len(items))
        return items
