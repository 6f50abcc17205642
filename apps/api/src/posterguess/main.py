from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .core.config import settings
from .core.database import register_database
from .puzzles.engine import get_game_session
from .routers import account, game, health


logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    logging.basicConfig(level=getattr(settings, "log_level", "INFO"))

    app = FastAPI(title="PosterGuess API", version="0.1.0")

    origins = list(settings.cors_origins or ["*"])
    if settings.frontend_base_url:
        origins.append(str(settings.frontend_base_url).rstrip("/"))
    allow_origins = ["*"] if "*" in origins else origins

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router, prefix="/health", tags=["health"])
    app.include_router(game.router, prefix="/game", tags=["game"])
    app.include_router(account.router, prefix="/account", tags=["account"])

    register_database(app)

    return app


app = create_app()


@app.on_event("startup")
async def warm_game_session() -> None:
    try:
        session = await get_game_session()
        await session.start()
    except Exception as exc:
        logger.warning("Failed to warm game session: %s", exc)
