"""Prompt relay and chat history endpoints."""

from typing import Annotated

from fastapi import APIRouter, Body

from .deps import RelayServiceDep
from .models import HistoryResponse, PromptRequest, PromptResponse

router = APIRouter(prefix="/api", tags=["chat"])


@router.post("/gemini", response_model=PromptResponse)
async def relay_prompt(
    relay: RelayServiceDep,
    payload: Annotated[PromptRequest | None, Body()] = None,
) -> PromptResponse:
    """Relay a prompt to Gemini and persist both turns.

    Failures after validation are reported in-band: the status code is
    200 and ``success`` tells the caller what happened.
    """
    payload = payload or PromptRequest()
    outcome = await relay.handle_prompt(payload.uid, payload.prompt)
    return PromptResponse(success=outcome.success, reply=outcome.reply)


@router.get(
    "/history/{uid}",
    response_model=HistoryResponse,
    response_model_exclude_none=True,
)
async def get_history(uid: str, relay: RelayServiceDep) -> HistoryResponse:
    """Return the user's chat history, oldest turn first."""
    result = await relay.get_history(uid)
    if not result.ok:
        return HistoryResponse(success=False, history=[], message=result.error)
    return HistoryResponse(success=True, history=result.turns)
