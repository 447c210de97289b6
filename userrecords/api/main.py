"""
FastAPI front end for the records router.
Every /records request is forwarded verbatim (method, path, query, raw body)
to the router, which owns routing precedence and error shaping.
"""

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import Response
from fastapi.middleware.cors import CORSMiddleware

from .schemas import HealthResponse
from ..core.config import VERSION, debug_enabled, get_cors_allow_origin, get_store_backend, validate_config
from ..core.router import RecordRouter
from ..core.store import get_store, StoreError
from ..util.logging import logger

ROUTED_METHODS = ["GET", "POST", "PUT", "DELETE", "PATCH"]

for issue in validate_config():
    logger.warning(f"Configuration issue: {issue}")

router = RecordRouter()
endpoints = APIRouter()


@endpoints.get("/health", response_model=HealthResponse)
def health_check_endpoint():
    """Check store health."""
    try:
        store = get_store()
        store_health = store.health_check()
        record_count = store.count() if store_health else 0
    except StoreError as e:
        logger.error(f"Health check failed: {e}")
        store_health, record_count = False, 0

    return HealthResponse(
        status="healthy" if store_health else "unhealthy",
        version=VERSION,
        store_backend=get_store_backend(),
        store_health=store_health,
        record_count=record_count
    )


@endpoints.api_route("/records", methods=ROUTED_METHODS)
@endpoints.api_route("/records/{record_path:path}", methods=ROUTED_METHODS)
async def records_endpoint(request: Request):
    """Forward a records request to the router."""
    raw_body = await request.body()
    body = raw_body.decode("utf-8") if raw_body else None

    result = router.dispatch(
        method=request.method,
        path=request.url.path,
        query=dict(request.query_params),
        body=body
    )

    return Response(
        content=result.body,
        status_code=result.status_code,
        headers={k: v for k, v in result.headers.items() if k.lower() != "content-type"},
        media_type=result.headers.get("Content-Type", "application/json")
    )


def create_app() -> FastAPI:
    """Build the application; CORS follows the configured allowed origin."""
    application = FastAPI(
        title="User Records API",
        version=VERSION,
        description="CRUD, search, stats and export over a single-table user record store",
        docs_url="/docs" if debug_enabled() else None,
        redoc_url="/redoc" if debug_enabled() else None
    )

    # Same origin the router stamps on its responses
    application.add_middleware(
        CORSMiddleware,
        allow_origins=[get_cors_allow_origin()],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.include_router(endpoints)
    return application


app = create_app()
