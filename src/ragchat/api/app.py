"""FastAPI application exposing the RagChat streaming endpoint."""

from __future__ import annotations

from dataclasses import dataclass
from uuid import uuid4

from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response, StreamingResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from ragchat.api.schemas import ChatErrorResponse, ChatRequest
from ragchat.config import Settings, get_settings
from ragchat.embeddings import EmbeddingClient, build_embedding_backend
from ragchat.errors import ChatError
from ragchat.metrics.observability import bind_correlation_id, clear_correlation_id, configure_logging, get_logger
from ragchat.retrieval import VectorSearchClient, collection_from_settings
from ragchat.retry import RetryPolicy
from ragchat.services.chat import ChatService
from ragchat.services.generation import GenerationClient, build_generation_backend
from ragchat.services.relay import STREAM_MEDIA_TYPE, relay_stream


@dataclass(frozen=True)
class AppDependencies:
    chat_service: ChatService
    search: VectorSearchClient


def _build_dependencies(settings: Settings) -> AppDependencies:
    policy = RetryPolicy(attempts=settings.retry_attempts, delay_seconds=settings.retry_delay_seconds)
    search = VectorSearchClient(
        collection_from_settings(settings),
        limit=settings.search_limit,
        policy=policy,
    )
    chat_service = ChatService(
        embedder=EmbeddingClient(build_embedding_backend(settings), policy),
        search=search,
        generator=GenerationClient(build_generation_backend(settings), policy),
    )
    return AppDependencies(chat_service=chat_service, search=search)


def _chat_failure_response() -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ChatErrorResponse().model_dump(),
    )


def create_app(*, settings: Settings | None = None, dependencies: AppDependencies | None = None) -> FastAPI:
    settings = settings or get_settings()
    deps = dependencies or _build_dependencies(settings)

    configure_logging()
    logger = get_logger("api")
    app = FastAPI(title="RagChat API", version="0.1.0")
    app.state.dependencies = deps

    # Optional CORS
    if settings.cors_allow_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(settings.cors_allow_origins),
            allow_credentials=settings.cors_allow_credentials,
            allow_methods=list(settings.cors_allow_methods),
            allow_headers=list(settings.cors_allow_headers),
        )

    @app.middleware("http")
    async def add_correlation_id(request: Request, call_next):  # type: ignore[override]
        correlation_id = request.headers.get("X-Request-ID", uuid4().hex)
        request.state.correlation_id = correlation_id
        bind_correlation_id(correlation_id)
        try:
            response = await call_next(request)
        finally:
            clear_correlation_id()
        response.headers["X-Correlation-ID"] = correlation_id
        return response

    @app.exception_handler(ChatError)
    async def handle_chat_error(request: Request, exc: ChatError) -> JSONResponse:
        correlation_id = getattr(request.state, "correlation_id", uuid4().hex)
        logger.error(
            "chat.failed",
            correlation_id=correlation_id,
            error_type=type(exc).__name__,
            detail=str(exc),
            cause=repr(exc.__cause__) if exc.__cause__ else None,
        )
        return _chat_failure_response()

    @app.exception_handler(RequestValidationError)
    async def handle_invalid_request(request: Request, exc: RequestValidationError) -> JSONResponse:
        correlation_id = getattr(request.state, "correlation_id", uuid4().hex)
        logger.warning("chat.invalid_request", correlation_id=correlation_id, error_count=len(exc.errors()))
        return _chat_failure_response()

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        correlation_id = getattr(request.state, "correlation_id", uuid4().hex)
        logger.error("unhandled.error", correlation_id=correlation_id, detail=str(exc))
        return _chat_failure_response()

    def get_dependencies(request: Request) -> AppDependencies:
        return request.app.state.dependencies

    def get_chat_service(dep: AppDependencies = Depends(get_dependencies)) -> ChatService:
        return dep.chat_service

    def get_search(dep: AppDependencies = Depends(get_dependencies)) -> VectorSearchClient:
        return dep.search

    @app.post(
        "/api/chat",
        response_class=StreamingResponse,
        responses={500: {"model": ChatErrorResponse}},
    )
    def chat(payload: ChatRequest, service: ChatService = Depends(get_chat_service)) -> Response:
        # Returns only once the first chunk has arrived; no body bytes are sent before that.
        stream = service.open_stream([message.to_domain() for message in payload.messages])
        return StreamingResponse(relay_stream(stream), media_type=STREAM_MEDIA_TYPE)

    @app.get("/metrics")
    async def metrics() -> Response:
        payload = generate_latest()
        return Response(content=payload, media_type=CONTENT_TYPE_LATEST)

    @app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        from ragchat import __version__

        return {"status": "ok", "version": __version__, "environment": settings.environment}

    @app.head("/healthz")
    async def healthcheck_head() -> Response:
        return Response(status_code=status.HTTP_200_OK)

    @app.get("/livez")
    async def liveness() -> dict[str, str]:
        return {"status": "alive"}

    @app.get("/healthz/ready")
    async def readiness(search: VectorSearchClient = Depends(get_search)) -> dict[str, str]:
        try:
            _ = search.count()
            return {"status": "ready"}
        except Exception as exc:  # pragma: no cover - defensive
            return {"status": "error", "detail": str(exc)}

    return app


app = create_app()
