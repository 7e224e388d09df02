import logging
from contextlib import asynccontextmanager

import fastapi_pagination
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.routing import APIRoute, APIRouter

from passbook.conf import Settings, get_settings
from passbook.db.base import configure_db_engine, verify_db_connection
from passbook.dependencies.auth import authentication_required, system_account_required
from passbook.errors import PassbookError
from passbook.policies import ContentPolicyCache, JsonFilePolicySource
from passbook.routers import access, entitlements, purchases, referrals, vouchers
from passbook.telemetry import setup_fastapi_instrumentor, setup_telemetry

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    app.debug = settings.debug
    setup_telemetry(settings)
    engine = configure_db_engine(settings)
    await verify_db_connection(settings)
    try:
        yield
    finally:
        await engine.dispose()


tags_metadata = [
    {
        "name": "Access",
        "description": "Decide whether a player may start an era and take the play.",
    },
    {
        "name": "Entitlements",
        "description": "Grants held by the current player.",
    },
    {
        "name": "Vouchers",
        "description": "Issue, preview and redeem voucher codes.",
    },
    {
        "name": "System",
        "description": "Hooks called by trusted back-office processes.",
    },
]


async def passbook_error_handler(request: Request, exc: PassbookError) -> JSONResponse:
    logger.warning(
        f"{exc.__class__.__name__} on {request.method} {request.url.path}: {exc}"
    )
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.user_message})


def setup_custom_serialization(router: APIRouter):
    for api_route in router.routes:
        if (
            isinstance(api_route, APIRoute)
            and hasattr(api_route, "response_model")
            and api_route.response_model
        ):
            api_route.response_model_exclude_none = True


def create_policy_cache(settings: Settings) -> ContentPolicyCache:
    return ContentPolicyCache(
        JsonFilePolicySource(settings.policy_file),
        ttl_seconds=settings.policy_cache_ttl_seconds,
    )


def setup_app(settings: Settings | None = None):
    settings = settings or get_settings()
    app = FastAPI(
        title="Passbook API",
        description="Era access, passes and vouchers for the naval battle game",
        openapi_tags=tags_metadata,
        version="1.0.0",
        lifespan=lifespan,
    )
    fastapi_pagination.add_pagination(app)
    app.add_exception_handler(PassbookError, passbook_error_handler)
    app.state.policy_cache = create_policy_cache(settings)

    setup_custom_serialization(access.router)

    app.include_router(
        access.router,
        prefix="/access",
        dependencies=[Depends(authentication_required)],
        tags=["Access"],
    )
    app.include_router(
        entitlements.router,
        prefix="/entitlements",
        dependencies=[Depends(authentication_required)],
        tags=["Entitlements"],
    )
    app.include_router(
        vouchers.router,
        prefix="/vouchers",
        tags=["Vouchers"],
    )
    app.include_router(
        referrals.router,
        prefix="/referrals",
        dependencies=[Depends(system_account_required)],
        tags=["System"],
    )
    app.include_router(
        purchases.router,
        prefix="/purchases",
        dependencies=[Depends(system_account_required)],
        tags=["System"],
    )

    setup_fastapi_instrumentor(settings, app)
    return app


app = setup_app()
