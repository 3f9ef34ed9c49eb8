"""Exception handlers that keep the relay's JSON envelope."""

from fastapi import FastAPI, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from gemini_relay.core.service.relay import PromptRequired

INVALID_BODY_MESSAGE = "Invalid request body"

# Routes whose callers only read {success, reply}.
RELAY_PATHS = frozenset({"/api/gemini"})


def _relay_error(message: str) -> JSONResponse:
    return JSONResponse(status_code=400, content={"success": False, "reply": message})


def register_exception_handlers(app: FastAPI) -> None:
    """Register custom exception handlers on ``app``."""

    @app.exception_handler(PromptRequired)
    async def handle_prompt_required(
        request: Request, exc: PromptRequired
    ) -> JSONResponse:
        return _relay_error(exc.message)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        if request.url.path not in RELAY_PATHS:
            return await request_validation_exception_handler(request, exc)

        # json_invalid errors end in a character offset, not a field name.
        fields = sorted(
            {
                loc[-1]
                for loc in (err.get("loc") or () for err in exc.errors())
                if loc and isinstance(loc[-1], str) and loc[-1] != "body"
            }
        )
        message = INVALID_BODY_MESSAGE
        if fields:
            message = f"{message}: {', '.join(fields)}"
        return _relay_error(message)
