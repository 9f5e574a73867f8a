import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request, status
from fastapi.responses import RedirectResponse

from flashfrenzy.api.dependencies import InvalidMatchId, get_auto_advance
from flashfrenzy.api.routes import api_router
from flashfrenzy.config.settings import get_settings
from flashfrenzy.db.base import init_db

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    load_dotenv()
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    init_db()
    logger.info("%s ready", settings.app_name)
    yield
    await get_auto_advance().shutdown()


app = FastAPI(title="Flashcard Frenzy", lifespan=lifespan)


@app.exception_handler(InvalidMatchId)
async def invalid_match_id_handler(_: Request, exc: InvalidMatchId) -> RedirectResponse:
    """Malformed match links land on the home page instead of failing queries."""
    return RedirectResponse(url="/", status_code=status.HTTP_303_SEE_OTHER)


@app.get("/")
def landing() -> dict[str, str]:
    return {"message": "Welcome to Flashcard Frenzy", "flashcards": "/flashcards", "matches": "/matches"}


@app.get("/health")
def health_check() -> dict[str, str]:
    """Basic health endpoint."""
    return {"status": "ok"}


app.include_router(api_router)
