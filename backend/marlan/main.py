"""FastAPI application"""
import time
import uuid
from contextlib import asynccontextmanager
from http import HTTPStatus

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .agents import build_agent_router
from .api import admin, agent_chat, events, health, profile, sessions, widget
from .auth import TokenVerifier
from .chat import ChatService, UrlScrapingMiddleware
from .config import config
from .db import SqliteKeyValueStore, init_db
from .events import EventsManager
from .rate_limit import RateLimiter
from .services.website_summary import WebsiteSummarizer
from .tools.deep_search import DeepSearchService
from .tools.registry import create_default_registry
from .tracing import init_langfuse
from .utils.structured_logger import LogContext, get_logger, log_section, setup_structured_logging

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the database, caches, agents and services on startup"""
    setup_structured_logging(log_level=config.LOG_LEVEL, log_dir=config.LOG_DIR, enable_json=config.LOG_JSON)
    log_section(logger, "Marlan chat backend starting")
    logger.info("Configuration loaded", **config.summary())

    await init_db()
    init_langfuse()

    kv_store = SqliteKeyValueStore()
    app.state.kv_store = kv_store
    app.state.events = EventsManager()
    app.state.token_verifier = TokenVerifier()
    app.state.widget_rate_limiter = RateLimiter()
    app.state.website_summarizer = WebsiteSummarizer()

    deep_search_service = DeepSearchService(cache=kv_store, events=app.state.events)
    app.state.agent_router = build_agent_router(create_default_registry(deep_search_service))
    app.state.chat_service = ChatService(
        app.state.agent_router,
        url_scraper=UrlScrapingMiddleware(cache=kv_store),
        deep_search=deep_search_service,
    )
    logger.info("Agents registered", agents=[a.id for a in app.state.agent_router.all_agents()])

    yield

    logger.info("Marlan chat backend stopped", open_event_streams=app.state.events.client_count)


def _error_body(error: str, message: str) -> dict:
    return {"error": error, "message": message}


def create_app() -> FastAPI:
    app = FastAPI(
        title="Marlan Chat API",
        description="Multi-agent assistant for photography studios",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex[:12]
        start = time.perf_counter()
        with LogContext(request_id=request_id):
            response = await call_next(request)
            logger.info(
                "HTTP request",
                method=request.method,
                path=request.url.path,
                status=response.status_code,
                duration_ms=round((time.perf_counter() - start) * 1000),
            )
        response.headers["X-Request-ID"] = request_id
        return response

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if isinstance(exc.detail, dict) and "error" in exc.detail:
            body = exc.detail
        else:
            body = _error_body(HTTPStatus(exc.status_code).phrase, str(exc.detail))
        return JSONResponse(status_code=exc.status_code, content=body, headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err.get('loc', ()) if p != 'body')}: {err.get('msg')}"
            for err in exc.errors()
        )
        return JSONResponse(status_code=400, content=_error_body("Bad Request", problems or "Invalid request"))

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error("Unhandled error", path=request.url.path, error=str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content=_error_body("Internal Server Error", "An unexpected error occurred"),
        )

    app.include_router(health.router, prefix="/api", tags=["health"])
    app.include_router(sessions.router, prefix="/api", tags=["sessions"])
    app.include_router(agent_chat.router, prefix="/api", tags=["agent chat"])
    app.include_router(widget.router, prefix="/api", tags=["widget"])
    app.include_router(events.router, prefix="/api", tags=["events"])
    app.include_router(profile.router, prefix="/api", tags=["profile"])
    app.include_router(admin.router, prefix="/api", tags=["admin"])

    @app.get("/")
    async def root():
        return {"message": "Marlan Chat API", "docs": "/docs", "health": "/api/health"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
