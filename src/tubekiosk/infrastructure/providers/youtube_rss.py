"""YouTube channel Atom feed provider (no API key, no quota).

The feed only carries id, title and publish date; duration, view count
and embeddability stay unknown, so these items pass the strict filters
only once relaxation drops the duration requirement.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from urllib.parse import parse_qs, urlparse

import httpx
import structlog

from tubekiosk.domain.entities.catalog import CandidateItem
from tubekiosk.domain.errors import ProviderError, SourceNotFoundError
from tubekiosk.infrastructure.providers.youtube_api import parse_timestamp

log = structlog.get_logger(__name__)

_FEED_URL = "https://www.youtube.com/feeds/videos.xml"
# Answers for an unknown or malformed channel id.
_UNKNOWN_CHANNEL_STATUSES = frozenset({400, 404})

_NS = {
    "atom": "http://www.w3.org/2005/Atom",
    "yt": "http://www.youtube.com/xml/schemas/2015",
}


def _video_id_from_link(entry: ET.Element) -> str:
    link = entry.find("atom:link", _NS)
    href = link.get("href", "") if link is not None else ""
    return parse_qs(urlparse(href).query).get("v", [""])[0]


def parse_feed(text: str, source_id: str) -> list[CandidateItem]:
    """Atom XML -> candidates; raises ``ProviderError`` on malformed XML."""
    try:
        root = ET.fromstring(text)
    except ET.ParseError as exc:
        raise ProviderError(f"rss feed is not valid XML: {exc}") from exc

    items: list[CandidateItem] = []
    for entry in root.findall("atom:entry", _NS):
        video_id = (entry.findtext("yt:videoId", "", _NS) or "").strip()
        if not video_id:
            video_id = _video_id_from_link(entry)
        if not video_id:
            continue
        channel_id = (entry.findtext("yt:channelId", "", _NS) or "").strip()
        items.append(
            CandidateItem(
                id=video_id,
                title=(entry.findtext("atom:title", "", _NS) or "").strip(),
                source_id=channel_id or source_id,
                published=parse_timestamp(entry.findtext("atom:published", "", _NS)),
            )
        )
    return items


class YouTubeRssProvider:
    """Implements ``CandidateProviderPort`` over the public channel feed."""

    name = "youtube_rss"

    def __init__(self, *, http_client: httpx.AsyncClient) -> None:
        self._http = http_client

    async def fetch(self, source_id: str, max_results: int) -> list[CandidateItem]:
        try:
            resp = await self._http.get(_FEED_URL, params={"channel_id": source_id})
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            log.warning("youtube_rss_http_error", channel=source_id, status=status)
            if status in _UNKNOWN_CHANNEL_STATUSES:
                raise SourceNotFoundError(f"rss feed failed: {status} unknown channel") from exc
            raise ProviderError(f"rss feed failed: {status}") from exc
        except httpx.HTTPError as exc:
            log.warning("youtube_rss_network_error", channel=source_id, error=str(exc))
            raise ProviderError(f"rss feed unreachable: {exc}") from exc

        items = parse_feed(resp.text, source_id)[: max(0, int(max_results))]
        log.debug("youtube_rss_fetched", channel=source_id, items=len(items))
        return items
