import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from songcatalog.api.endpoints import songs
from songcatalog.core.config import get_settings
from songcatalog.core.http_client import HttpClientManager
from songcatalog.services.enrichment_service import EnrichmentClient, EnrichmentError, FixtureStore
from songcatalog.services.storage_service import Database

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    configure_logging(settings.log_level)

    database = Database(settings.database_url, echo=settings.database_echo)
    await database.migrate()
    logger.info("Database connect success")

    HttpClientManager.configure(settings.external_api_timeout)

    app.state.settings = settings
    app.state.database = database
    app.state.enrichment_client = EnrichmentClient(
        settings.external_api_base_url,
        settings.external_api_info_path,
    )
    app.state.fixture_store = FixtureStore(settings.enrich_fixture_path)

    yield

    await HttpClientManager.close()
    await database.dispose()


app = FastAPI(
    title="SongCatalog",
    description="Song catalog with metadata enrichment and paginated lyrics.",
    version="1.0.0",
    docs_url="/docs",
    openapi_url="/openapi.json",
    lifespan=lifespan
)

app.include_router(songs.router)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if any(err.get("loc", ("",))[0] == "path" for err in errors):
        message = "invalid song ID format"
    else:
        message = "invalid request body"
    logger.error(f"{message}: {request.method} {request.url.path} {errors}")
    return JSONResponse(status_code=400, content={"detail": message})


@app.exception_handler(EnrichmentError)
async def enrichment_exception_handler(request: Request, exc: EnrichmentError):
    logger.error(f"Enrichment failed for {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"detail": "internal server error"})


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Database error for {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"detail": "internal server error"})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error for {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"detail": "internal server error"})


@app.get("/health")
async def health_check():
    return {"status": "ok"}


if __name__ == "__main__":
    settings = get_settings()
    configure_logging(settings.log_level)
    uvicorn.run("songcatalog.main:app", host=settings.host, port=settings.port)
