from __future__ import annotations

from typing import Optional

from fastapi import APIRouter
from pydantic import BaseModel

from ..puzzles.engine import get_game_session
from ..puzzles.models import GameSettings, LanguageFilter
from .game import GameStateResponse, render, run_action

router = APIRouter()


class TokenPayload(BaseModel):
    token: str


class TokenResponse(BaseModel):
    valid: bool
    error: str = ""


class SettingsUpdate(BaseModel):
    remember_seen: Optional[bool] = None
    language_filter: Optional[LanguageFilter] = None


@router.post("/token", response_model=TokenResponse)
async def submit_token(payload: TokenPayload) -> TokenResponse:
    session = await get_game_session()
    valid = await run_action(lambda: session.submit_token(payload.token))
    return TokenResponse(valid=valid, error=session.state.token_error)


@router.get("/settings", response_model=GameSettings)
async def get_settings() -> GameSettings:
    session = await get_game_session()
    return session.state.settings


@router.put("/settings", response_model=GameSettings)
async def put_settings(payload: SettingsUpdate) -> GameSettings:
    session = await get_game_session()
    return session.update_settings(
        remember_seen=payload.remember_seen,
        language_filter=payload.language_filter,
    )


@router.post("/clear-cache", response_model=GameStateResponse)
async def request_clear_cache() -> GameStateResponse:
    session = await get_game_session()
    session.request_clear_cache()
    return render(session)


@router.post("/clear-cache/confirm", response_model=GameStateResponse)
async def confirm_clear_cache() -> GameStateResponse:
    session = await get_game_session()
    await run_action(session.confirm_clear_cache)
    return render(session)


@router.post("/clear-cache/cancel", response_model=GameStateResponse)
async def cancel_clear_cache() -> GameStateResponse:
    session = await get_game_session()
    session.cancel_clear_cache()
    return render(session)
