"""
br_cli/server/app.py

FastAPI application exposing the daemon's JSON-over-HTTP surface.

Mutating endpoints are POST with a JSON body and answer plain-text "ok";
reads are GET. Every br-cli error is rendered as a plain-text body with the
status code mapped in EXCEPTION_STATUS_CODES.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import PlainTextResponse

from br_cli import __version__
from br_cli.data_models.requests import (
    FillSecretRequest,
    GotoRequest,
    PressRequest,
    ScrollToRequest,
    SelectorRequest,
    SwitchTabRequest,
    TextInputRequest,
    XPathForIdRequest,
)
from br_cli.session.context import BrowserSessionContext
from br_cli.session.dispatcher import ActionDispatcher
from br_cli.utils.exceptions import (
    ActionFailureError,
    BrCliError,
    BrowserConnectionError,
    ElementNotFoundError,
    InspectionFailureError,
    UnknownIdError,
    ValidationError,
)
from br_cli.utils.logger import get_logger

logger = get_logger(name=__name__)

ContextFactory = Callable[[], Awaitable[BrowserSessionContext]]

EXCEPTION_STATUS_CODES: dict[type[BrCliError], int] = {
    ValidationError: 400,
    UnknownIdError: 400,
    ElementNotFoundError: 404,
    InspectionFailureError: 500,
    ActionFailureError: 500,
    BrowserConnectionError: 500,
}

OK = "ok"


def status_code_for(exc: BrCliError) -> int:
    """Map an exception to its HTTP status, walking the class hierarchy."""
    for cls in type(exc).__mro__:
        if cls in EXCEPTION_STATUS_CODES:
            return EXCEPTION_STATUS_CODES[cls]
    return 500


def format_validation_errors(exc: RequestValidationError) -> str:
    """Render pydantic request errors as one descriptive line, e.g. 'selector: Field required'."""
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        messages.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return "; ".join(messages) or "invalid request"


def get_dispatcher(request: Request) -> ActionDispatcher:
    return request.app.state.dispatcher


def build_app(context_factory: ContextFactory | None = None) -> FastAPI:
    """
    Build the daemon application.
    Args:
        context_factory: Creates the session context on startup. Defaults to
            connecting to Chrome with BrowserSessionContext.open.
    Returns:
        The FastAPI app. The context is closed when the app shuts down.
    """
    context_factory = context_factory or BrowserSessionContext.open

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("🔧 Starting browser session")
        context = await context_factory()
        app.state.context = context
        app.state.dispatcher = ActionDispatcher(context)
        try:
            yield
        finally:
            await context.close()

    app = FastAPI(title="br-cli daemon", version=__version__, lifespan=lifespan)

    # Exception handlers ___________________________________________________________________________________________________

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> PlainTextResponse:
        message = format_validation_errors(exc)
        logger.warning("⚠️ %s %s rejected: %s", request.method, request.url.path, message)
        return PlainTextResponse(message, status_code=400)

    @app.exception_handler(BrCliError)
    async def br_cli_error_handler(request: Request, exc: BrCliError) -> PlainTextResponse:
        status_code = status_code_for(exc)
        if status_code >= 500:
            logger.error("❌ %s %s failed: %s", request.method, request.url.path, exc)
        else:
            logger.warning("⚠️ %s %s rejected: %s", request.method, request.url.path, exc)
        return PlainTextResponse(str(exc), status_code=status_code)

    # Navigation ___________________________________________________________________________________________________________

    @app.post("/goto", response_class=PlainTextResponse)
    async def goto(body: GotoRequest, dispatcher: ActionDispatcher = Depends(get_dispatcher)) -> str:
        await dispatcher.goto(body.url)
        return OK

    @app.get("/tabs")
    async def tabs(dispatcher: ActionDispatcher = Depends(get_dispatcher)) -> list[dict[str, Any]]:
        return [info.model_dump(by_alias=True) for info in await dispatcher.list_tabs()]

    @app.post("/tabs/switch", response_class=PlainTextResponse)
    async def switch_tab(body: SwitchTabRequest, dispatcher: ActionDispatcher = Depends(get_dispatcher)) -> str:
        await dispatcher.switch_tab(body.index)
        return OK

    # Element actions ______________________________________________________________________________________________________

    @app.post("/click", response_class=PlainTextResponse)
    async def click(body: SelectorRequest, dispatcher: ActionDispatcher = Depends(get_dispatcher)) -> str:
        await dispatcher.click(body.selector)
        return OK

    @app.post("/fill", response_class=PlainTextResponse)
    async def fill(body: TextInputRequest, dispatcher: ActionDispatcher = Depends(get_dispatcher)) -> str:
        await dispatcher.fill(body.selector, body.text)
        return OK

    @app.post("/fill-secret", response_class=PlainTextResponse)
    async def fill_secret(body: FillSecretRequest, dispatcher: ActionDispatcher = Depends(get_dispatcher)) -> str:
        await dispatcher.fill_secret(body.selector, body.secret)
        return OK

    @app.post("/type", response_class=PlainTextResponse)
    async def type_text(body: TextInputRequest, dispatcher: ActionDispatcher = Depends(get_dispatcher)) -> str:
        await dispatcher.type(body.selector, body.text)
        return OK

    @app.post("/press", response_class=PlainTextResponse)
    async def press(body: PressRequest, dispatcher: ActionDispatcher = Depends(get_dispatcher)) -> str:
        await dispatcher.press(body.key)
        return OK

    # Scrolling ____________________________________________________________________________________________________________

    @app.post("/scroll-into-view", response_class=PlainTextResponse)
    async def scroll_into_view(body: SelectorRequest, dispatcher: ActionDispatcher = Depends(get_dispatcher)) -> str:
        await dispatcher.scroll_into_view(body.selector)
        return OK

    @app.post("/scroll-to", response_class=PlainTextResponse)
    async def scroll_to(body: ScrollToRequest, dispatcher: ActionDispatcher = Depends(get_dispatcher)) -> str:
        await dispatcher.scroll_to(body.percentage)
        return OK

    @app.post("/next-chunk", response_class=PlainTextResponse)
    async def next_chunk(dispatcher: ActionDispatcher = Depends(get_dispatcher)) -> str:
        await dispatcher.next_chunk()
        return OK

    @app.post("/prev-chunk", response_class=PlainTextResponse)
    async def prev_chunk(dispatcher: ActionDispatcher = Depends(get_dispatcher)) -> str:
        await dispatcher.prev_chunk()
        return OK

    # Reads ________________________________________________________________________________________________________________

    @app.get("/screenshot", response_class=PlainTextResponse)
    async def screenshot(dispatcher: ActionDispatcher = Depends(get_dispatcher)) -> str:
        return str(await dispatcher.screenshot())

    @app.get("/html", response_class=PlainTextResponse)
    async def html(dispatcher: ActionDispatcher = Depends(get_dispatcher)) -> str:
        return await dispatcher.html()

    @app.get("/tree")
    async def tree(
        include_mapping: bool = False,
        dispatcher: ActionDispatcher = Depends(get_dispatcher),
    ) -> dict[str, Any]:
        snapshot = await dispatcher.view_tree()
        payload: dict[str, Any] = {"tree": snapshot.tree}
        if include_mapping:
            payload["idToXPath"] = snapshot.path_index
        return payload

    @app.post("/xpath-for-id")
    async def xpath_for_id(body: XPathForIdRequest, dispatcher: ActionDispatcher = Depends(get_dispatcher)) -> Any:
        try:
            return {"xpath": dispatcher.xpath_for_id(body.key)}
        except UnknownIdError as e:
            logger.warning("⚠️ No structural path for id %s", body.key)
            return PlainTextResponse(str(e), status_code=404)

    # History ______________________________________________________________________________________________________________

    @app.get("/history")
    async def history(dispatcher: ActionDispatcher = Depends(get_dispatcher)) -> list[dict[str, Any]]:
        return [record.model_dump(mode="json") for record in dispatcher.history()]

    @app.post("/history/clear", response_class=PlainTextResponse)
    async def clear_history(dispatcher: ActionDispatcher = Depends(get_dispatcher)) -> str:
        dispatcher.clear_history()
        return OK

    @app.get("/health", response_class=PlainTextResponse)
    async def health() -> str:
        return OK

    return app
