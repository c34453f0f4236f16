from typing import AsyncIterator, List, Optional
from fastapi import APIRouter, Body, HTTPException, Depends, Path, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession
from songcatalog.schemas.models import (
    AddSongRequest,
    MessageResponse,
    SongDetail,
    SongFilters,
    SongOut,
    SongTextPage,
    SongUpdate,
    UpdateResponse,
)
from songcatalog.services.enrichment_service import EnrichmentClient, FixtureStore
from songcatalog.services.song_service import (
    InvalidSongDataError,
    PageNotFoundError,
    SongNotFoundError,
    SongService,
)
import logging

router = APIRouter()
logger = logging.getLogger(__name__)

# Largest id a BIGINT column can hold
MAX_SONG_ID = 2**63 - 1

# Dependency Injection for Services
async def get_session(request: Request) -> AsyncIterator[AsyncSession]:
    async with request.app.state.database.session() as session:
        yield session

def get_enrichment_client(request: Request) -> EnrichmentClient:
    return request.app.state.enrichment_client

def get_fixture_store(request: Request) -> FixtureStore:
    return request.app.state.fixture_store

def get_song_service(
    request: Request,
    session: AsyncSession = Depends(get_session),
    enrichment: EnrichmentClient = Depends(get_enrichment_client),
    fixtures: FixtureStore = Depends(get_fixture_store)
) -> SongService:
    settings = request.app.state.settings
    return SongService(
        session,
        enrichment,
        fixtures,
        release_date_policy=settings.release_date_policy,
        fixture_fallback=settings.enrich_fixture_fallback
    )

@router.post("/info", response_model=SongDetail, summary="Get or enrich song information")
async def add_song_info(
    body: AddSongRequest,
    service: SongService = Depends(get_song_service)
):
    """
    Returns the song detail for the given group and title.
    Unknown songs are looked up in the external API and stored.
    """
    logger.info(f"Received info request for: {body.group} - {body.song}")
    return await service.add_or_enrich(body.group, body.song)

@router.get("/songs", response_model=List[SongOut], summary="List songs with optional filtering")
async def get_songs(
    group: Optional[str] = None,
    song: Optional[str] = None,
    release_date: Optional[str] = Query(None, description="DD.MM.YYYY"),
    text: Optional[str] = None,
    link: Optional[str] = None,
    page: Optional[str] = Query(None, description="Page number, default 1"),
    limit: Optional[str] = Query(None, description="Items per page, default 10"),
    service: SongService = Depends(get_song_service)
):
    filters = SongFilters(group=group, song=song, release_date=release_date, text=text, link=link)
    return await service.list_songs(filters, page, limit)

@router.get("/songs/{song_id}/text", response_model=SongTextPage, summary="Get song text with pagination")
async def get_song_text(
    song_id: int = Path(..., le=MAX_SONG_ID),
    page: Optional[str] = Query(None, description="Page number, default 1"),
    limit: Optional[str] = Query(None, description="Stanzas per page, default 10"),
    service: SongService = Depends(get_song_service)
):
    try:
        return await service.get_text(song_id, page, limit)
    except SongNotFoundError:
        raise HTTPException(status_code=404, detail="song not found")
    except PageNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

@router.patch("/songs/{song_id}", response_model=UpdateResponse, summary="Partially update a song")
async def update_song(
    song_id: int = Path(..., le=MAX_SONG_ID),
    update: SongUpdate = Body(...),
    service: SongService = Depends(get_song_service)
):
    try:
        await service.update_song(song_id, update)
    except SongNotFoundError:
        raise HTTPException(status_code=404, detail="song not found")
    except InvalidSongDataError as e:
        logger.warning(f"Invalid update for song {song_id}: {e}")
        raise HTTPException(status_code=400, detail=str(e))

    return UpdateResponse(message="song updated successfully", song_id=song_id)

@router.delete("/songs/{song_id}", response_model=MessageResponse, summary="Delete a song")
async def delete_song(
    song_id: int = Path(..., le=MAX_SONG_ID),
    service: SongService = Depends(get_song_service)
):
    try:
        await service.delete_song(song_id)
    except SongNotFoundError:
        raise HTTPException(status_code=404, detail="song not found")

    return MessageResponse(message="song deleted successfully")
