import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from carebridge.config import CORS_ORIGINS, LOG_LEVEL
from carebridge.database import init_db
from carebridge.errors import ApiException
from carebridge.routes import (
    accounts,
    activity_tracking,
    acuity_webhooks,
    amazon_sns,
    appointment_types,
    appointments,
    assessments,
    availability,
    content,
    faqs,
    group_session_requests,
    group_session_reservations,
    group_sessions,
    institutions,
    providers,
    reporting,
    system,
    twilio_callbacks,
)
from carebridge.utils.background import shutdown_executor

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="CareBridge API")

_cors_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
if CORS_ORIGINS:
    _cors_origins.extend(o.strip() for o in CORS_ORIGINS.split(",") if o.strip())

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# Error handlers
# ============================================================================


@app.exception_handler(ApiException)
def handle_api_exception(request: Request, exc: ApiException):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code} {exc.code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
def handle_request_validation_error(request: Request, exc: RequestValidationError):
    field_errors = {}
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path", "header")]
        field_errors[".".join(location) or "request"] = error.get("msg", "Invalid value.")
    message = next(iter(field_errors.values()), "Please correct the errors and try again.")
    return JSONResponse(
        status_code=422,
        content={"code": "VALIDATION_FAILED", "message": message, "field_errors": field_errors, "metadata": {}},
    )


# ============================================================================
# Routers
# ============================================================================

app.include_router(accounts.router, prefix="/api", tags=["accounts"])
app.include_router(institutions.router, prefix="/api", tags=["institutions"])
app.include_router(providers.router, prefix="/api", tags=["providers"])
app.include_router(appointment_types.router, prefix="/api", tags=["appointment-types"])
app.include_router(availability.router, prefix="/api", tags=["availability"])
app.include_router(appointments.router, prefix="/api", tags=["appointments"])
app.include_router(group_sessions.router, prefix="/api", tags=["group-sessions"])
app.include_router(group_session_reservations.router, prefix="/api", tags=["group-sessions"])
app.include_router(group_session_requests.router, prefix="/api", tags=["group-sessions"])
app.include_router(content.router, prefix="/api", tags=["content"])
app.include_router(faqs.router, prefix="/api", tags=["faqs"])
app.include_router(assessments.router, prefix="/api", tags=["assessments"])
app.include_router(reporting.router, prefix="/api", tags=["reporting"])
app.include_router(activity_tracking.router, prefix="/api", tags=["activity-tracking"])
app.include_router(system.router, prefix="/api", tags=["system"])

# Vendor webhooks
app.include_router(acuity_webhooks.router, prefix="/api", tags=["webhooks"])
app.include_router(twilio_callbacks.router, prefix="/api", tags=["webhooks"])
app.include_router(amazon_sns.router, prefix="/api", tags=["webhooks"])


@app.on_event("startup")
def on_startup():
    init_db()
    route_count = sum(1 for r in app.routes if getattr(r, "path", None))
    logger.info(f"CareBridge API started with {route_count} routes")


@app.on_event("shutdown")
def on_shutdown():
    shutdown_executor(wait=False)
