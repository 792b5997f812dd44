"""
HTTP API Server for federated content search.

Endpoints:
    GET /api/search               ranked, paginated results
    GET /api/search/suggestions   prefix/substring suggestions
    GET /api/search/popular       trending queries
    GET /health                   liveness plus provider status

Only two error classes reach clients: 400 for invalid input (raised by the
search facade before any provider runs) and a generic 500 for aggregation
failures. Provider failures are absorbed by their synthetic fallbacks.
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from civic_search import __version__
from civic_search.application.search.facade import SearchFacade
from civic_search.core.exceptions import AggregationError, CivicSearchError, ValidationError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from civic_search.container import ApplicationContainer

logger = logging.getLogger(__name__)

DEFAULT_API_HOST = "127.0.0.1"
DEFAULT_API_PORT = 8765


# =============================================================================
# Response models
# =============================================================================


class ApiModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PaginationModel(ApiModel):
    page: int
    page_size: int
    total: int
    has_next_page: bool
    has_prev_page: bool


class SearchMetadataModel(ApiModel):
    categories: list[str]
    query_terms: list[str]
    region: str
    sort_by: str
    provider_stats: list[dict[str, Any]]
    search_time_ms: float


class SearchResponseModel(ApiModel):
    """Search envelope: items are ContentItem.to_dict() payloads."""

    query: str
    type_filter: str
    total: int
    items: list[dict[str, Any]]
    pagination: PaginationModel
    metadata: SearchMetadataModel


class SuggestionsResponse(BaseModel):
    suggestions: list[dict[str, Any]]


class PopularQueriesResponse(BaseModel):
    queries: list[str]


class ProviderStatusModel(ApiModel):
    provider_id: str
    enabled: bool
    kinds: list[str]


class HealthResponse(ApiModel):
    status: str
    version: str
    providers: list[ProviderStatusModel]


class ErrorResponse(BaseModel):
    error: str
    category: str | None = None
    suggestion: str | None = None
    example: str | None = None


# =============================================================================
# Routes
# =============================================================================

router = APIRouter()


def get_facade(request: Request) -> SearchFacade:
    return request.app.state.facade


@router.get("/health", response_model=HealthResponse)
async def health_check(facade: SearchFacade = Depends(get_facade)) -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        version=__version__,
        providers=[
            ProviderStatusModel(
                provider_id=p.provider_id,
                enabled=p.enabled,
                kinds=sorted(k.value for k in p.kinds),
            )
            for p in facade.aggregator.providers
        ],
    )


@router.get(
    "/api/search",
    response_model=SearchResponseModel,
    responses={
        400: {"model": ErrorResponse, "description": "Missing or invalid query"},
        500: {"model": ErrorResponse, "description": "Search failed"},
    },
)
async def search(
    q: str | None = Query(default=None, description="Free-text query"),
    type: str = Query(default="all", description="all, posts, news, reels, videos or users"),
    page: str | None = Query(default=None, description="Page number (>= 1)"),
    limit: str | None = Query(default=None, description="Page size (1-50)"),
    region: str = Query(default="local", description="'local' enables regional prioritization"),
    category: str | None = Query(default=None, description="Category filter; 'todos' means all categories"),
    sort: str = Query(default="relevance", description="relevance, date or category"),
    language: str = Query(default="es"),
    facade: SearchFacade = Depends(get_facade),
) -> dict[str, Any]:
    """
    Universal search across posts, news, videos and users.

    Non-numeric or non-positive ``page``/``limit`` fall back to 1/10; an
    unknown ``sort`` falls back to relevance.
    """
    try:
        response = await facade.search(
            q,
            type_filter=type,
            page=page,
            page_size=limit,
            region=region,
            category=category,
            language=language,
            sort_by=sort,
        )
    except CivicSearchError:
        raise
    except Exception as e:
        logger.exception(f"Search failed for {q!r}: {e}")
        raise AggregationError() from e
    return response.to_dict()


@router.get("/api/search/suggestions", response_model=SuggestionsResponse)
async def suggestions(
    q: str | None = Query(default=None),
    facade: SearchFacade = Depends(get_facade),
) -> SuggestionsResponse:
    """Suggestions for queries of at least two characters."""
    return SuggestionsResponse(suggestions=await facade.suggestions(q))


@router.get("/api/search/popular", response_model=PopularQueriesResponse)
async def popular_queries(facade: SearchFacade = Depends(get_facade)) -> PopularQueriesResponse:
    return PopularQueriesResponse(queries=facade.popular_queries())


async def handle_search_error(request: Request, exc: CivicSearchError) -> JSONResponse:
    if isinstance(exc, ValidationError):
        logger.info(f"Rejected {request.url.path}: {exc}")
        return JSONResponse(status_code=400, content=exc.to_dict())
    logger.error(f"{request.url.path} failed: {exc}")
    return JSONResponse(status_code=500, content={"error": "Failed to perform search", "category": exc.category.value})


# =============================================================================
# App factory
# =============================================================================


def create_api_server(
    facade: SearchFacade | None = None,
    container: ApplicationContainer | None = None,
) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        facade: Ready-made SearchFacade (tests); takes precedence.
        container: DI container to build the facade from (default: a new one).

    Returns:
        Configured FastAPI instance.
    """
    if facade is None:
        if container is None:
            from civic_search.container import ApplicationContainer

            container = ApplicationContainer()
        facade = container.facade()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info(f"Search API ready with {len(facade.aggregator.providers)} providers")
        yield
        for provider in facade.aggregator.providers:
            await provider.close()
        logger.info("Search API shut down")

    app = FastAPI(
        title="Civic Search API",
        description="Federated content search with relevance ranking and regional prioritization.",
        version=__version__,
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )
    app.state.facade = facade
    app.add_exception_handler(CivicSearchError, handle_search_error)  # type: ignore[arg-type]
    app.include_router(router)
    return app


def run_api_server(host: str = DEFAULT_API_HOST, port: int = DEFAULT_API_PORT, seed: int | None = None) -> None:
    """
    Run the HTTP API server.

    Args:
        host: Host to bind to (default: 127.0.0.1 for local only)
        port: Port to bind to (default: 8765)
        seed: Seed for synthetic fallback content
    """
    import uvicorn

    from civic_search.container import ApplicationContainer

    container = ApplicationContainer()
    container.config.from_dict({"synthetic_seed": seed})
    app = create_api_server(container=container)

    logger.info(f"Starting search API on {host}:{port}")
    uvicorn.run(app, host=host, port=port, log_level="info")


def main(argv: list[str] | None = None) -> None:
    import argparse

    parser = argparse.ArgumentParser(description="Civic Search HTTP API Server")
    parser.add_argument("--host", default=os.environ.get("SEARCH_API_HOST", DEFAULT_API_HOST), help="Host to bind to")
    parser.add_argument(
        "--port",
        type=int,
        default=int(os.environ.get("SEARCH_API_PORT", str(DEFAULT_API_PORT))),
        help="Port to bind to",
    )
    parser.add_argument("--seed", type=int, default=None, help="Seed for synthetic fallback content")
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    run_api_server(host=args.host, port=args.port, seed=args.seed)


if __name__ == "__main__":
    main()
