from dotenv import load_dotenv
load_dotenv()

import logging
from urllib.parse import urlencode

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from prometheus_fastapi_instrumentator import Instrumentator

import sannu.models  # ensure models load for Alembic
from sannu.api.middleware.security_headers import SecurityHeadersMiddleware
from sannu.api.routes.admin import router as admin_router
from sannu.api.routes.admin_projects import router as admin_projects_router
from sannu.api.routes.auth import router as auth_router
from sannu.api.routes.dashboard import router as dashboard_router
from sannu.api.routes.profile import router as profile_router
from sannu.api.routes.invitations import router as invitations_router
from sannu.api.routes.public_projects import router as public_projects_router
from sannu.api.routes.settings import router as settings_router
from sannu.api.routes.tenant_applications import router as tenant_applications_router
from sannu.api.routes.tenant_projects import router as tenant_projects_router
from sannu.config import get_app_url
from sannu.exceptions import AuthenticationRequired, TenantNotFound, TooManyAttempts, ValidationError
from sannu.logging_config import configure_logging
from sannu.tracing import configure_tracing

# ------------------------------------------------------------------
# Configure Observability
# ------------------------------------------------------------------
configure_logging()
configure_tracing()

logger = logging.getLogger(__name__)

app = FastAPI(title="Sannu-Sannu")
app.add_middleware(SecurityHeadersMiddleware)


def wants_json(request: Request) -> bool:
    accept = request.headers.get("accept", "")
    return "application/json" in accept or request.headers.get("x-requested-with") == "XMLHttpRequest"


# ------------------------------------------------------------------
# Error handlers
# ------------------------------------------------------------------
@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"message": exc.message, "errors": exc.errors},
    )


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    # Field-keyed messages, same shape as ValidationError
    errors = {}
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path", "form")]
        field = ".".join(location) or "request"
        message = error.get("msg", "Invalid value.")
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        errors.setdefault(field, []).append(message)
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"message": "The given data was invalid.", "errors": errors},
    )


@app.exception_handler(AuthenticationRequired)
async def authentication_required_handler(request: Request, exc: AuthenticationRequired):
    if wants_json(request):
        return JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content={"message": exc.reason})
    return RedirectResponse("/login", status_code=status.HTTP_302_FOUND)


@app.exception_handler(TenantNotFound)
async def tenant_not_found_handler(request: Request, exc: TenantNotFound):
    if wants_json(request):
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"message": "Tenant not found"})
    if exc.via_subdomain:
        query = urlencode({"error": "tenant_not_found", "slug": exc.slug})
        return RedirectResponse(f"{get_app_url().rstrip('/')}?{query}", status_code=status.HTTP_302_FOUND)
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"message": "Organization not found"})


@app.exception_handler(TooManyAttempts)
async def too_many_attempts_handler(request: Request, exc: TooManyAttempts):
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={
            "message": f"Too many login attempts. Please try again in {exc.retry_after} seconds.",
            "errors": {"email": [f"Too many login attempts. Please try again in {exc.retry_after} seconds."]},
        },
        headers={"Retry-After": str(exc.retry_after)},
    )


# ------------------------------------------------------------------
# Routes
# ------------------------------------------------------------------
app.include_router(auth_router)
app.include_router(tenant_applications_router)
app.include_router(dashboard_router)
app.include_router(settings_router)
app.include_router(profile_router)
app.include_router(admin_router)
app.include_router(admin_projects_router)
app.include_router(public_projects_router)
app.include_router(invitations_router)

# ------------------------------------------------------------------
# Observability
# ------------------------------------------------------------------
FastAPIInstrumentor.instrument_app(app)
Instrumentator().instrument(app).expose(app)


# ------------------------------------------------------------------
# Health Check
# ------------------------------------------------------------------
@app.get("/health")
def health_check():
    return {"status": "ok"}


# Catch-all "/{tenant}/..." routes go last so fixed paths win
app.include_router(tenant_projects_router)
