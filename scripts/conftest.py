"""Pytest fixtures: temporary SQLite database, fake enrichment upstream, API client."""
import json
import pytest
import httpx
from fastapi.testclient import TestClient

from songcatalog.core.config import get_settings
from songcatalog.services.enrichment_service import EnrichmentClient, FixtureStore
from songcatalog.services.storage_service import Database
from songcatalog.services.song_service import SongService

UPSTREAM_URL = "http://upstream.test"


class FakeUpstream:
    """
    Stands in for the external info API.
    Details are keyed by song title; unknown titles get a 404.
    """

    def __init__(self, details=None, status_code=200, error=None):
        self.details = details or {}
        self.status_code = status_code
        self.error = error
        self.calls = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        if self.error is not None:
            raise self.error
        song = request.url.params.get("song")
        if song not in self.details:
            return httpx.Response(404, json={"message": "not found"})
        return httpx.Response(self.status_code, json=self.details[song])


def make_enrichment_client(upstream: FakeUpstream) -> EnrichmentClient:
    client = httpx.AsyncClient(transport=httpx.MockTransport(upstream))
    return EnrichmentClient(UPSTREAM_URL, "/info", client=client)


def write_fixture(path, **fields) -> None:
    record = {"group": "", "song": "", "release_date": "", "text": "", "link": ""}
    record.update(fields)
    path.write_text(json.dumps(record), encoding="utf-8")


@pytest.fixture
def upstream():
    return FakeUpstream(details={
        "Supermassive Black Hole": {
            "releaseDate": "16.07.2006",
            "text": "Ooh baby, don't you know I suffer?\nOoh baby, can you hear me moan?\n\nYou caught me under false pretenses\nHow long before you let me go?",
            "link": "https://www.youtube.com/watch?v=Xsp3_a-PMTw",
        },
    })


@pytest.fixture
def fixture_path(tmp_path):
    return tmp_path / "enrichInfoSong.json"


@pytest.fixture
async def database(tmp_path):
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'songs.db'}")
    await db.migrate()
    yield db
    await db.dispose()


@pytest.fixture
async def session(database):
    async with database.session() as s:
        yield s


@pytest.fixture
def service_factory(session, upstream, fixture_path):
    def factory(**kwargs):
        return SongService(
            session,
            make_enrichment_client(kwargs.pop("upstream", upstream)),
            FixtureStore(str(fixture_path)),
            **kwargs
        )
    return factory


@pytest.fixture
def api_client(tmp_path, monkeypatch, upstream, fixture_path):
    from songcatalog.main import app
    from songcatalog.api.endpoints.songs import get_enrichment_client

    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'api.db'}")
    monkeypatch.setenv("ENRICH_FIXTURE_PATH", str(fixture_path))
    monkeypatch.setenv("RELEASE_DATE_POLICY", "now")
    get_settings.cache_clear()

    enrichment = make_enrichment_client(upstream)
    app.dependency_overrides[get_enrichment_client] = lambda: enrichment

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()
    get_settings.cache_clear()
