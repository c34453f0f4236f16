import logging
from typing import Optional
from urllib.parse import urlencode

import httpx
from pydantic import ValidationError

from songcatalog.core.http_client import HttpClientManager
from songcatalog.schemas.models import FixtureRecord, SongDetail

logger = logging.getLogger(__name__)


class EnrichmentError(Exception):
    """Upstream lookup failed: transport, status, or payload."""
    pass


class EnrichmentClient:
    """
    Client for the external song info API.

    Every failure mode (network error, non-2xx status, unreadable or
    malformed body) surfaces as EnrichmentError. No retries.
    """

    def __init__(self, base_url: str, info_path: str = "/info",
                 client: Optional[httpx.AsyncClient] = None, timeout: Optional[float] = None):
        self.base_url = base_url.rstrip("/")
        self.info_path = info_path if info_path.startswith("/") else f"/{info_path}"
        self._client = client
        self.timeout = timeout

    @property
    def client(self) -> httpx.AsyncClient:
        """Injected client if any, otherwise the shared one."""
        return self._client or HttpClientManager.get_client()

    def build_url(self, group: str, title: str) -> str:
        query = urlencode({"group": group, "song": title})
        return f"{self.base_url}{self.info_path}?{query}"

    async def fetch(self, group: str, title: str) -> SongDetail:
        url = self.build_url(group, title)
        kwargs = {"timeout": self.timeout} if self.timeout is not None else {}

        try:
            response = await self.client.get(url, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Failed to get song detail for {group} - {title}: {e}")
            raise EnrichmentError("failed to get song detail") from e

        if not response.is_success:
            logger.error(f"Failed to get song detail with status code {response.status_code} for {group} - {title}")
            raise EnrichmentError(f"upstream returned status {response.status_code}")

        try:
            payload = response.json()
        except ValueError as e:
            logger.error(f"Failed to read song detail for {group} - {title}: {e}")
            raise EnrichmentError("failed to read song detail") from e

        if not isinstance(payload, dict):
            logger.error(f"Unexpected song detail payload type {type(payload).__name__} for {group} - {title}")
            raise EnrichmentError("malformed song detail")

        try:
            detail = SongDetail.model_validate(payload)
        except ValidationError as e:
            logger.error(f"Failed to unmarshal song detail for {group} - {title}: {e}")
            raise EnrichmentError("malformed song detail") from e

        logger.info(f"Fetched song detail for {group} - {title}")
        return detail


class FixtureStore:
    """
    Local JSON override for song details.

    The file holds a single record and is re-read on every call, so edits take
    effect without a restart. Any read or parse failure means "no override".
    """

    def __init__(self, path: str):
        self.path = path

    def load(self) -> Optional[FixtureRecord]:
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                return FixtureRecord.model_validate_json(f.read())
        except FileNotFoundError:
            logger.debug(f"Enrichment file not found: {self.path}")
            return None
        except (OSError, UnicodeDecodeError, ValidationError) as e:
            logger.warning(f"Failed to load enrichment file {self.path}: {e}")
            return None

    def match(self, group: str, title: str) -> Optional[FixtureRecord]:
        record = self.load()
        if record and record.group == group and record.song == title:
            return record
        return None

    def apply(self, detail: SongDetail, group: str, title: str) -> SongDetail:
        """Overwrite releaseDate, text and link when the record matches exactly."""
        record = self.match(group, title)
        if not record:
            return detail
        logger.info(f"Applying enrichment file override for {group} - {title}")
        return detail.model_copy(update={
            "releaseDate": record.release_date,
            "text": record.text,
            "link": record.link,
        })

    def lookup(self, group: str, title: str) -> Optional[SongDetail]:
        """Detail built purely from the file, or None when it does not match."""
        record = self.match(group, title)
        if not record:
            return None
        return SongDetail(releaseDate=record.release_date, text=record.text, link=record.link)
