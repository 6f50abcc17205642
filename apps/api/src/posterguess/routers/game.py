from __future__ import annotations

from typing import Awaitable, Callable, Optional, TypeVar

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from ..puzzles.engine import GameSession, InvalidActionError, get_game_session
from ..puzzles.loader import CatalogUnavailableError
from ..puzzles.models import MediaKind, Mode, SessionState
from ..services.tmdb import image_url

router = APIRouter()

T = TypeVar("T")


class GameStateResponse(BaseModel):
    state: SessionState
    image_url: str = ""


class ModePayload(BaseModel):
    mode: Mode


class MediaKindPayload(BaseModel):
    media_kind: MediaKind


class GuessTextPayload(BaseModel):
    text: str


class GuessPayload(BaseModel):
    guess: Optional[str] = None


def render(session: GameSession) -> GameStateResponse:
    state = session.state
    poster = image_url(state.item.poster_path) if state.item is not None else ""
    return GameStateResponse(state=state, image_url=poster)


async def run_action(action: Callable[[], Awaitable[T]]) -> T:
    try:
        return await action()
    except InvalidActionError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc
    except CatalogUnavailableError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc


def run_sync_action(action: Callable[[], T]) -> T:
    try:
        return action()
    except InvalidActionError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc


@router.get("/state", response_model=GameStateResponse)
async def get_state() -> GameStateResponse:
    session = await get_game_session()
    return render(session)


@router.post("/mode", response_model=GameStateResponse)
async def select_mode(payload: ModePayload) -> GameStateResponse:
    session = await get_game_session()
    await run_action(lambda: session.select_mode(payload.mode))
    return render(session)


@router.post("/media", response_model=GameStateResponse)
async def select_media_kind(payload: MediaKindPayload) -> GameStateResponse:
    session = await get_game_session()
    await run_action(lambda: session.select_media_kind(payload.media_kind))
    return render(session)


@router.post("/leave/confirm", response_model=GameStateResponse)
async def confirm_leave() -> GameStateResponse:
    session = await get_game_session()
    await run_action(session.confirm_leave)
    return render(session)


@router.post("/leave/cancel", response_model=GameStateResponse)
async def cancel_leave() -> GameStateResponse:
    session = await get_game_session()
    session.cancel_leave()
    return render(session)


@router.put("/input", response_model=GameStateResponse)
async def update_guess_text(payload: GuessTextPayload) -> GameStateResponse:
    session = await get_game_session()
    session.update_guess_text(payload.text)
    return render(session)


@router.post("/suggestions/{item_id}/select", response_model=GameStateResponse)
async def select_suggestion(item_id: int) -> GameStateResponse:
    session = await get_game_session()
    run_sync_action(lambda: session.select_suggestion(item_id))
    return render(session)


@router.post("/guess", response_model=GameStateResponse)
async def submit_guess(payload: GuessPayload) -> GameStateResponse:
    session = await get_game_session()
    await run_action(lambda: session.submit_guess(payload.guess))
    return render(session)


@router.post("/give-up", response_model=GameStateResponse)
async def request_give_up() -> GameStateResponse:
    session = await get_game_session()
    run_sync_action(session.request_give_up)
    return render(session)


@router.post("/give-up/confirm", response_model=GameStateResponse)
async def confirm_give_up() -> GameStateResponse:
    session = await get_game_session()
    await run_action(session.confirm_give_up)
    return render(session)


@router.post("/give-up/cancel", response_model=GameStateResponse)
async def cancel_give_up() -> GameStateResponse:
    session = await get_game_session()
    session.cancel_give_up()
    return render(session)


@router.post("/next", response_model=GameStateResponse)
async def next_puzzle() -> GameStateResponse:
    session = await get_game_session()
    await run_action(session.next_puzzle)
    return render(session)


@router.post("/reload", response_model=GameStateResponse)
async def reload_puzzle() -> GameStateResponse:
    session = await get_game_session()
    await run_action(session.reload)
    return render(session)
