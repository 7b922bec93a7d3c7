"""FastAPI app serving the LearnFlow chat relay."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from fastapi.staticfiles import StaticFiles
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .errors import ClientInputError, RateLimitExceeded
from .knowledge import load_knowledge
from .llm import LLMClient
from .models import ChatRequest, KnowledgeBase, LearnflowSettings
from .orchestrator import APOLOGY_REPLY, AdminPolicy, ChatOrchestrator, TextGenerator
from .prompts import PromptComposer
from .ratelimit import RateLimiter
from .resources import ResourceIndex
from .sitemap import SITEMAP_ERROR, generate_sitemap
from .websearch import WebSearchClient

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Request helpers
# ---------------------------------------------------------------------------


def _caller_identity(request: Request, body: object) -> str:
    """``userId`` from the body when present, else the client address."""
    if isinstance(body, dict):
        user_id = body.get("userId")
        if isinstance(user_id, str) and user_id.strip():
            return user_id.strip()
    if request.client is not None and request.client.host:
        return request.client.host
    return "unknown"


def _parse_chat_request(body: object) -> ChatRequest:
    if not isinstance(body, dict) or not isinstance(body.get("messages"), list):
        raise ClientInputError("Messages array is required")
    try:
        return ChatRequest.model_validate(body)
    except ValidationError as exc:
        raise ClientInputError(f"Malformed messages array: {exc.error_count()} invalid field(s)") from exc


class SinglePageFiles(StaticFiles):
    """Static front end; unknown paths get ``index.html`` so client routes load."""

    async def get_response(self, path: str, scope):
        try:
            return await super().get_response(path, scope)
        except StarletteHTTPException as exc:
            if exc.status_code != 404:
                raise
        return await super().get_response("index.html", scope)


# ---------------------------------------------------------------------------
# API endpoints
# ---------------------------------------------------------------------------


@router.get("/api/health")
async def health(request: Request) -> JSONResponse:
    settings: LearnflowSettings = request.app.state.settings
    return JSONResponse({
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": settings.environment,
    })


@router.post("/api/chat")
async def chat(request: Request) -> JSONResponse:
    try:
        body = await request.json()
    except ValueError:
        body = None

    identity = _caller_identity(request, body)
    limiter: RateLimiter = request.app.state.rate_limiter
    try:
        limiter.check(identity)
    except RateLimitExceeded as exc:
        logger.warning("Rate limit exceeded for %s", identity)
        return JSONResponse(
            status_code=429,
            content={
                "error": "Rate limit exceeded. Please try again later.",
                "resetTime": int(exc.reset_at * 1000),
            },
        )

    orchestrator: ChatOrchestrator = request.app.state.orchestrator
    try:
        chat_request = _parse_chat_request(body)
        reply = await orchestrator.handle(chat_request.messages, identity)
    except ClientInputError as exc:
        return JSONResponse(status_code=400, content={"error": str(exc)})
    except Exception:
        logger.exception("Error in chat endpoint")
        return JSONResponse(
            status_code=500,
            content={
                "error": "Failed to process your request",
                "message": {"role": "assistant", "content": APOLOGY_REPLY},
            },
        )
    return JSONResponse({"message": reply.model_dump()})


@router.get("/sitemap.xml")
async def sitemap(request: Request) -> Response:
    settings: LearnflowSettings = request.app.state.settings
    try:
        content = generate_sitemap(settings.site_url)
    except Exception:
        logger.exception("Error generating sitemap")
        return Response(SITEMAP_ERROR, status_code=500, media_type="application/xml")
    return Response(
        content,
        media_type="application/xml; charset=utf-8",
        headers={
            "Cache-Control": "public, max-age=86400",
            "X-Content-Type-Options": "nosniff",
        },
    )


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------


def create_app(
    settings: LearnflowSettings | None = None,
    *,
    knowledge: KnowledgeBase | None = None,
    resource_index: ResourceIndex | None = None,
    llm_client: TextGenerator | None = None,
    web_search: WebSearchClient | None = None,
    rate_limiter: RateLimiter | None = None,
) -> FastAPI:
    """Wire every collaborator and return the app.

    Anything not passed in is built from *settings*. The resource index is
    scanned here, once.
    """
    settings = settings or LearnflowSettings()
    knowledge = knowledge or load_knowledge(settings.navigation_file)

    if resource_index is None:
        resource_index = ResourceIndex(settings.effective_resources_dir, settings.project_root)
        resource_index.initialize()

    if llm_client is None and settings.gemini_api_key:
        llm_client = LLMClient(api_key=settings.gemini_api_key, model=settings.gemini_model)
    if llm_client is None:
        logger.warning("GEMINI_API_KEY not set: chat will answer with fallback responses only.")

    if web_search is None:
        web_search = WebSearchClient(
            api_key=settings.search_api_key, engine_id=settings.search_engine_id
        )

    app = FastAPI(title="learnflow", version="0.1.0")
    app.state.settings = settings
    app.state.rate_limiter = rate_limiter or RateLimiter(
        settings.rate_limit_max_requests, settings.rate_limit_window_seconds
    )
    app.state.orchestrator = ChatOrchestrator(
        composer=PromptComposer(knowledge=knowledge, resources=resource_index, web_search=web_search),
        llm=llm_client,
        project_root=settings.project_root,
        admin_policy=AdminPolicy.from_users(
            settings.admin_users, open_access=not settings.is_production
        ),
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.effective_cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        logger.info("%s %s", request.method, request.url.path)
        return await call_next(request)

    app.include_router(router)

    if settings.static_dir is not None:
        if settings.static_dir.is_dir():
            app.mount("/", SinglePageFiles(directory=settings.static_dir, html=True), name="static")
        else:
            logger.warning("Static directory %s does not exist; not serving it.", settings.static_dir)

    return app


def start_server(settings: LearnflowSettings) -> None:
    """Build the app from *settings* and serve it with uvicorn."""
    import uvicorn

    app = create_app(settings)
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)
