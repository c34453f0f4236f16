import logging
from datetime import date, datetime, timezone
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import contains_eager

from songcatalog.core.parser import (
    ParsingError,
    PageOutOfRangeError,
    format_release_date,
    normalize_pagination,
    page_offset,
    paginate,
    parse_release_date,
    split_stanzas,
    total_pages,
    validate_link,
)
from songcatalog.db.models import Group, Song
from songcatalog.schemas.models import SongDetail, SongFilters, SongTextPage, SongUpdate
from songcatalog.services.enrichment_service import EnrichmentClient, EnrichmentError, FixtureStore

logger = logging.getLogger(__name__)


class InvalidSongDataError(ValueError):
    """A supplied field failed validation."""
    pass


class SongNotFoundError(LookupError):
    pass


class PageNotFoundError(LookupError):
    """Requested text page is past the last stanza, or the song has no text."""
    pass


class SongService:
    """
    Song catalog operations on top of a request-scoped session.
    Coordinators:
    - Storage -> via the injected AsyncSession
    - Remote metadata -> via EnrichmentClient
    - Local overrides -> via FixtureStore
    """

    def __init__(self, session: AsyncSession, enrichment: EnrichmentClient, fixtures: FixtureStore,
                 release_date_policy: str = "now", fixture_fallback: bool = False):
        self.session = session
        self.enrichment = enrichment
        self.fixtures = fixtures
        self.release_date_policy = release_date_policy
        self.fixture_fallback = fixture_fallback

    # --- lookup helpers ---

    async def _find_song(self, group_name: str, title: str) -> Optional[Song]:
        stmt = (
            select(Song)
            .join(Song.group)
            .options(contains_eager(Song.group))
            .where(Group.name == group_name, Song.title == title)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def _find_group(self, name: str) -> Optional[Group]:
        result = await self.session.execute(select(Group).where(Group.name == name))
        return result.scalars().first()

    async def _get_or_create_group(self, name: str) -> Group:
        group = await self._find_group(name)
        if group is None:
            group = Group(name=name)
            self.session.add(group)
            await self.session.flush()
            logger.info(f"Created group {name}")
        return group

    async def _get_song(self, song_id: int) -> Song:
        song = await self.session.get(Song, song_id)
        if song is None:
            raise SongNotFoundError(f"song {song_id} not found")
        return song

    # --- add / enrich ---

    def _detail_from_song(self, song: Song) -> SongDetail:
        return SongDetail(
            releaseDate=format_release_date(song.release_date),
            text=song.text or "",
            link=song.link or "",
        )

    def _resolve_release_date(self, raw: str, group: str, title: str) -> date:
        try:
            return parse_release_date(raw)
        except ParsingError as e:
            if self.release_date_policy == "reject":
                logger.error(f"Rejecting upstream release date {raw!r} for {group} - {title}")
                raise EnrichmentError("unparsable release date from upstream") from e
            logger.warning(f"Failed to parse release date {raw!r} for {group} - {title}, using today")
            return datetime.now(timezone.utc).date()

    async def _fetch_detail(self, group: str, title: str) -> SongDetail:
        try:
            return await self.enrichment.fetch(group, title)
        except EnrichmentError:
            if self.fixture_fallback:
                fallback = self.fixtures.lookup(group, title)
                if fallback is not None:
                    logger.info(f"Upstream lookup failed, using enrichment file for {group} - {title}")
                    return fallback
            raise

    async def _insert_song(self, group_name: str, title: str, release_date: date, detail: SongDetail) -> Song:
        """Ensure the group exists and insert the song, committed as one transaction."""
        group = await self._get_or_create_group(group_name)
        song = Song(
            group=group,
            title=title,
            release_date=release_date,
            text=detail.text,
            link=detail.link,
        )
        self.session.add(song)
        await self.session.commit()
        return song

    async def add_or_enrich(self, group: str, title: str) -> SongDetail:
        """
        Return the detail of a song, creating it from the enrichment API on a miss.

        The local enrichment file is applied last, so a matching record always
        wins over what is stored.
        """
        song = await self._find_song(group, title)
        if song is None:
            logger.info(f"Song not found: {group} - {title}")
            detail = await self._fetch_detail(group, title)
            release_date = self._resolve_release_date(detail.releaseDate, group, title)

            try:
                song = await self._insert_song(group, title, release_date, detail)
                logger.info(f"Added new song {group} - {title} (id={song.id})")
            except IntegrityError:
                # Another request created the group or the song concurrently
                await self.session.rollback()
                song = await self._find_song(group, title)
                if song is None:
                    song = await self._insert_song(group, title, release_date, detail)
                    logger.info(f"Added new song {group} - {title} (id={song.id}) after retry")

        result = self._detail_from_song(song)
        return self.fixtures.apply(result, group, title)

    # --- listing ---

    async def list_songs(self, filters: SongFilters, page=None, limit=None) -> List[Song]:
        page, limit = normalize_pagination(page, limit)

        stmt = select(Song).join(Song.group).options(contains_eager(Song.group))

        if filters.group:
            stmt = stmt.where(Group.name.ilike(f"%{filters.group}%"))
        if filters.song:
            stmt = stmt.where(Song.title.ilike(f"%{filters.song}%"))
        if filters.release_date:
            try:
                stmt = stmt.where(Song.release_date == parse_release_date(filters.release_date))
            except ParsingError:
                logger.debug(f"Ignoring unparsable release_date filter {filters.release_date!r}")
        if filters.text:
            stmt = stmt.where(Song.text.ilike(f"%{filters.text}%"))
        if filters.link:
            stmt = stmt.where(Song.link.ilike(f"%{filters.link}%"))

        stmt = stmt.order_by(Song.id).offset(page_offset(page, limit)).limit(limit)

        result = await self.session.execute(stmt)
        songs = list(result.scalars().all())
        logger.info(f"Songs retrieved successfully, count={len(songs)} page={page} limit={limit}")
        return songs

    # --- lyrics ---

    async def get_text(self, song_id: int, page=None, limit=None) -> SongTextPage:
        song = await self._get_song(song_id)
        page, limit = normalize_pagination(page, limit)

        stanzas = split_stanzas(song.text)
        if not stanzas:
            logger.error(f"No text found for song id {song_id}")
            raise PageNotFoundError("text not found")

        try:
            selected = paginate(stanzas, page, limit)
        except PageOutOfRangeError as e:
            logger.error(f"Page out of range for song id {song_id}: page={page}")
            raise PageNotFoundError("no text found for requested page") from e

        logger.info(f"Retrieved text for song id {song_id}, page={page}")
        return SongTextPage(
            songId=song_id,
            page=page,
            text=selected,
            total=len(stanzas),
            limit=limit,
            totalPage=total_pages(len(stanzas), limit),
        )

    # --- update / delete ---

    async def _ensure_title_free(self, song: Song, group_id: int, title: str) -> None:
        stmt = select(Song.id).where(Song.group_id == group_id, Song.title == title, Song.id != song.id)
        result = await self.session.execute(stmt)
        if result.first() is not None:
            raise InvalidSongDataError("song with this title already exists in the group")

    async def update_song(self, song_id: int, update: SongUpdate) -> Song:
        """
        Apply only the supplied fields. Validation stops at the first invalid
        field and nothing is written in that case.
        """
        song = await self._get_song(song_id)
        changes = {}

        if update.group_id is not None:
            group = await self.session.get(Group, update.group_id)
            if group is None:
                raise InvalidSongDataError(f"group {update.group_id} does not exist")
            changes["group"] = group

        if update.title is not None:
            title = update.title.strip()
            if not title:
                raise InvalidSongDataError("title must not be empty")
            changes["title"] = title

        if "group" in changes or "title" in changes:
            target_group_id = changes["group"].id if "group" in changes else song.group_id
            await self._ensure_title_free(song, target_group_id, changes.get("title", song.title))

        if update.release_date is not None:
            try:
                changes["release_date"] = parse_release_date(update.release_date)
            except ParsingError as e:
                raise InvalidSongDataError("invalid release date format") from e

        if update.text is not None:
            changes["text"] = update.text

        if update.link is not None:
            try:
                changes["link"] = validate_link(update.link)
            except ParsingError as e:
                raise InvalidSongDataError("invalid link format") from e

        for field, value in changes.items():
            setattr(song, field, value)

        try:
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            raise InvalidSongDataError("song with this title already exists in the group") from e

        logger.info(f"Song {song_id} updated successfully, fields={sorted(changes)}")
        return song

    async def delete_song(self, song_id: int) -> None:
        song = await self._get_song(song_id)
        await self.session.delete(song)
        await self.session.commit()
        logger.info(f"Song {song_id} deleted successfully")
