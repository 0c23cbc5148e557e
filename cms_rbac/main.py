import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from cms_rbac.config.settings import settings
from cms_rbac.core.exceptions import RBACError
from cms_rbac.database.supabase_client import create_optional_supabase
from cms_rbac.modules.access import routes as access_routes
from cms_rbac.modules.assignments import routes as assignments_routes
from cms_rbac.modules.permissions import routes as permissions_routes
from cms_rbac.modules.roles import routes as roles_routes
from cms_rbac.scripts.seed_permissions_roles import run_seed

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application startup")
    app.state.supabase = create_optional_supabase(settings)
    if settings.seed_on_startup and app.state.supabase is not None:
        totals = run_seed(app.state.supabase)
        logger.info(f"Startup seeding: {totals}")
    yield
    app.state.supabase = None
    logger.info("Application shutdown")


limiter = Limiter(key_func=get_remote_address, default_limits=[settings.rate_limit])
app = FastAPI(
    title=settings.app_name,
    debug=settings.debug,
    redirect_slashes=False,
    lifespan=lifespan,
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(RBACError)
async def rbac_exception_handler(request: Request, exc: RBACError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    detail = "Internal server error" if settings.is_production else str(exc)
    return JSONResponse(status_code=500, content={"detail": detail})


SECURITY_HEADERS = [
    (b"X-Content-Type-Options", b"nosniff"),
    (b"X-Frame-Options", b"DENY"),
    (b"Referrer-Policy", b"no-referrer"),
]


class SecurityHeadersMiddleware:
    """Adds SECURITY_HEADERS to every HTTP response"""

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            return await self.app(scope, receive, send)

        async def send_secured(message):
            if message["type"] == "http.response.start":
                message["headers"] = list(message.get("headers", [])) + SECURITY_HEADERS
            await send(message)

        await self.app(scope, receive, send_secured)


app.add_middleware(SlowAPIMiddleware)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

for router in (
    permissions_routes.router,
    roles_routes.router,
    assignments_routes.router,
    access_routes.router,
):
    app.include_router(router, prefix="/api/v1")


@app.get("/health")
@limiter.exempt
async def health():
    return {"status": "healthy", "service": settings.app_name}


@app.get("/ready")
@limiter.exempt
async def ready(request: Request):
    """Readiness check: the store client exists and the roles table answers."""
    supabase = getattr(request.app.state, "supabase", None)
    if supabase is None:
        return JSONResponse(status_code=503, content={"status": "unavailable", "reason": "store not configured"})
    try:
        supabase.table("roles").select("id").limit(1).execute()
    except Exception as e:
        logger.warning(f"Readiness check failed: {e}")
        return JSONResponse(status_code=503, content={"status": "unavailable", "reason": "store unreachable"})
    return {"status": "ready"}
