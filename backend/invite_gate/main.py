# backend/invite_gate/main.py

import logging
import time
import traceback
import uuid
from typing import Any, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse

from invite_gate.core.config import settings
from invite_gate.core.errors import AdminErrorCode, install_request_id_logging
from invite_gate.core.request_context import DbMetrics, get_request_id, request_scope

# --- Logging setup ---
# The record factory runs for every record, globally, so %(request_id)s never
# raises KeyError even for third-party loggers the filter is not attached to.
_old_factory = logging.getLogRecordFactory()


def _record_factory(*args, **kwargs):
    record = _old_factory(*args, **kwargs)
    if not hasattr(record, "request_id"):
        record.request_id = "-"
    return record


logging.setLogRecordFactory(_record_factory)

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(levelname)s %(name)s request_id=%(request_id)s %(message)s",
)
install_request_id_logging()

logger = logging.getLogger("invite_gate")

enable_docs = settings.enable_docs
logger.info("Startup: environment=%s enable_docs=%s", settings.environment, enable_docs)

# Log DB backend type (sqlite, postgresql, etc.) without leaking credentials
db_backend = (settings.database_url or "").split(":", 1)[0] or "unknown"
logger.info("DB backend detected: %s", db_backend)

SLOW_HTTP_MS = float(settings.slow_http_ms)

# --- App setup ---
app = FastAPI(
    title="Invite Gate API",
    openapi_url="/api/v1/openapi.json" if enable_docs else None,
    docs_url="/api/v1/docs" if enable_docs else None,
    redoc_url="/api/v1/redoc" if enable_docs else None,
)


def _get_request_id(request: Request) -> str:
    """
    Use an incoming request id if present (common in proxies),
    otherwise generate one.
    """
    incoming = request.headers.get("x-request-id") or request.headers.get("x-correlation-id")
    if incoming and incoming.strip():
        return incoming.strip()[:128]
    return uuid.uuid4().hex


def _client_ip(request: Request) -> str:
    xff = request.headers.get("x-forwarded-for")
    if xff:
        first = xff.split(",")[0].strip()
        if first:
            return first
    return request.client.host if request.client else "unknown"


def _rid_from_request(request: Request) -> str:
    # Prefer request.state (set by middleware), fall back to request_context, then generate.
    rid = getattr(request.state, "request_id", None)
    if isinstance(rid, str) and rid.strip():
        return rid
    rid2 = get_request_id()
    if rid2 and rid2 != "-":
        return rid2
    return uuid.uuid4().hex


def _error_payload(code: str, message: str, request_id: str, extra: Optional[dict] = None) -> dict:
    """
    Standardized error contract:
    - code/message/request_id at the top level
    - detail mirrors code/message for clients that only read `detail`
    """
    payload: dict[str, Any] = {
        "code": code,
        "message": message,
        "request_id": request_id,
        "detail": {"code": code, "message": message},
    }
    if extra:
        payload.update(extra)
    return payload


def _http_exception_payload(exc: HTTPException, *, request_id: str) -> dict:
    """
    If exc.detail is a dict, preserve it and merge it into payload["detail"],
    so handlers can raise HTTPException(500, detail={"code": ..., "message": ...})
    and clients receive the structured fields. String details are passed
    through as the message.
    """
    code = f"HTTP_{exc.status_code}"

    if isinstance(exc.detail, dict):
        msg = exc.detail.get("message")
        if not isinstance(msg, str) or not msg.strip():
            msg = "Request failed."

        merged_detail: dict[str, Any] = {"code": code, "message": msg}
        merged_detail.update(exc.detail)

        return _error_payload(code=code, message=msg, request_id=request_id, extra={"detail": merged_detail})

    msg = exc.detail if isinstance(exc.detail, str) else "Request failed."
    return _error_payload(code=code, message=msg, request_id=request_id)


# --- Exception handlers (standardized error contract) ---
@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    request_id = _rid_from_request(request)

    resp = JSONResponse(
        status_code=exc.status_code,
        content=_http_exception_payload(exc, request_id=request_id),
        headers=getattr(exc, "headers", None),
    )
    resp.headers["X-Request-ID"] = request_id
    return resp


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    request_id = _rid_from_request(request)
    resp = JSONResponse(
        status_code=422,
        content=_error_payload(
            code="VALIDATION_ERROR",
            message="Validation error. Check request body/query parameters.",
            request_id=request_id,
            extra={"errors": exc.errors()},
        ),
    )
    resp.headers["X-Request-ID"] = request_id
    return resp


# --- Observability middleware: request id + timing + structured logs ---
@app.middleware("http")
async def request_observability(request: Request, call_next):
    request_id = _get_request_id(request)
    request.state.request_id = request_id

    with request_scope(request_id) as m:
        start = time.perf_counter()
        status_code = 500

        try:
            response = await call_next(request)
            status_code = getattr(response, "status_code", 200) or 200
            response.headers["X-Request-ID"] = request_id
            return response

        except Exception as e:
            # HTTPException / validation errors go to the handlers above.
            if isinstance(e, (HTTPException, RequestValidationError)):
                raise

            logger.error(
                "Unhandled error method=%s path=%s error=%s",
                request.method,
                request.url.path,
                str(e),
            )
            logger.error(traceback.format_exc())

            payload = _error_payload(
                code=AdminErrorCode.INTERNAL_ERROR.value,
                message="Internal Server Error",
                request_id=request_id,
            )
            resp = JSONResponse(status_code=500, content=payload)
            resp.headers["X-Request-ID"] = request_id
            return resp

        finally:
            duration_ms = (time.perf_counter() - start) * 1000.0
            _log_request(request, status_code, duration_ms, m)


def _log_request(request: Request, status_code: int, duration_ms: float, m: DbMetrics) -> None:
    # key=value so the line stays grep-friendly
    log_fn = logger.warning if duration_ms >= SLOW_HTTP_MS else logger.info
    log_fn(
        "req method=%s path=%s status=%s duration_ms=%.2f db_total_ms=%.2f db_q=%s db_slowest_ms=%.2f ip=%s",
        request.method,
        request.url.path,
        status_code,
        duration_ms,
        m.total_ms,
        m.query_count,
        m.slowest_ms,
        _client_ip(request),
    )

    if not m.exceeds(settings.slow_db_total_ms):
        return

    if settings.log_db_sql:
        logger.warning(
            "slow_db_total method=%s path=%s status=%s db_total_ms=%.2f db_q=%s slowest_sql=%s",
            request.method,
            request.url.path,
            status_code,
            m.total_ms,
            m.query_count,
            m.slowest_sql_head,
        )
    else:
        logger.warning(
            "slow_db_total method=%s path=%s status=%s db_total_ms=%.2f db_q=%s",
            request.method,
            request.url.path,
            status_code,
            m.total_ms,
            m.query_count,
        )


# --- Include routers (after app creation) ---
from invite_gate.api.v1 import health, invitations  # noqa: E402

app.include_router(health.router, prefix="/api/v1")
app.include_router(invitations.router, prefix="/api/v1")


@app.get("/", include_in_schema=False)
def root():
    if enable_docs:
        return RedirectResponse(url="/api/v1/docs")
    return {"status": "Invite Gate API is running. See /api/v1/health."}
