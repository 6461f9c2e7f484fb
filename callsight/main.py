import logging
import time
import traceback
import uuid
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv

# .env is loaded from the project root wherever uvicorn is started from
_PROJ_ROOT = Path(__file__).resolve().parent.parent
load_dotenv(_PROJ_ROOT / ".env")

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
from sqlmodel import Session

from callsight.api.auth import router as auth_router
from callsight.api.conversations import router as conversations_router
from callsight.api.simulations import router as simulations_router
from callsight.core.config import is_assemblyai_configured, is_openai_configured, settings
from callsight.core.database import engine, init_db
from callsight.core.rate_limit import limiter
from callsight.logging import setup_logging
from callsight.models import ErrorLog
from callsight.services.insights import OpenAIInsightClient
from callsight.services.storage import build_storage
from callsight.services.transcription import AssemblyAIClient

setup_logging(level=logging.INFO)
log = logging.getLogger("callsight")


def _cors_origins_list() -> list[str]:
    if not settings.cors_origins or settings.cors_origins.strip() == "*":
        return ["*"]
    return [o.strip() for o in settings.cors_origins.split(",") if o.strip()]


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    app.state.transcriber = AssemblyAIClient(
        api_key=settings.assemblyai_api_key,
        base_url=settings.assemblyai_base_url,
        timeout=settings.transcription_timeout_seconds,
    )
    app.state.insights = OpenAIInsightClient(model=settings.openai_model)
    app.state.storage = build_storage(settings)
    log.info("OpenAI configured: %s", "yes" if is_openai_configured() else "NO (set OPENAI_API_KEY=sk-... in .env)")
    log.info("AssemblyAI configured: %s", "yes" if is_assemblyai_configured() else "NO (set ASSEMBLYAI_API_KEY in .env)")
    log.info("Storage backend: %s", settings.storage_backend)
    yield
    app.state.transcriber.close()


app = FastAPI(
    title="Callsight API",
    description="Sales call transcription and conversation intelligence",
    lifespan=lifespan,
)
app.state.limiter = limiter


def _error_response(request: Request, status_code: int, detail: str) -> JSONResponse:
    rid = getattr(request.state, "request_id", None)
    body = {"error": detail, "status_code": status_code}
    if rid:
        body["request_id"] = rid
    return JSONResponse(status_code=status_code, content=body)


def _rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    ip = (request.headers.get("x-forwarded-for") or "").split(",")[0].strip() or (request.client.host if request.client else "")
    log.warning("Rate limit exceeded: ip=%s path=%s", ip, request.url.path)
    return _error_response(request, 429, "Too many requests. Please wait a minute.")


def _validation_error_message(exc: RequestValidationError) -> str:
    errs = exc.errors()
    if not errs:
        return "Invalid request."
    first = errs[0]
    loc = list(first.get("loc") or [])
    field = str(loc[-1]) if loc else None
    if first.get("type") == "missing":
        if field == "body":
            return "Request body is missing."
        return f"Missing field: {field}." if field else "Missing field."
    msg = first.get("msg") or "Invalid request."
    return f"{field}: {msg}" if field and field != "body" else msg


def _jsonable_errors(errs) -> list[dict]:
    # ctx may carry the raw exception object
    return [{k: v for k, v in e.items() if k in ("type", "loc", "msg")} for e in errs]


@app.exception_handler(RequestValidationError)
def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errs = exc.errors()
    log.warning(
        "Request validation error (422): path=%s method=%s detail=%s",
        request.url.path,
        request.method,
        errs,
    )
    rid = getattr(request.state, "request_id", None)
    body = {"error": _validation_error_message(exc), "status_code": 422, "detail": _jsonable_errors(errs)}
    if rid:
        body["request_id"] = rid
    return JSONResponse(status_code=422, content=body)


app.add_exception_handler(RateLimitExceeded, _rate_limit_handler)


@app.exception_handler(HTTPException)
def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    response = _error_response(request, exc.status_code, exc.detail if isinstance(exc.detail, str) else str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


@app.exception_handler(Exception)
def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    log.exception("Unhandled exception: path=%s %s", request.url.path, exc, exc_info=True)
    try:
        with Session(engine) as db:
            db.add(ErrorLog(
                user_id=None,
                endpoint=request.url.path,
                method=request.method,
                error_message=str(exc)[:2000],
                stack_trace=traceback.format_exc()[:10000],
            ))
            db.commit()
    except Exception as e:
        log.warning("ErrorLog write failed: %s", e)
    path = (request.url.path or "").strip()
    if path.startswith("/conversation-intelligence"):
        user_msg = "Conversation analysis failed unexpectedly."
    else:
        user_msg = "Unexpected server error."
    return _error_response(request, 500, user_msg)


@app.middleware("http")
async def request_id_and_latency(request: Request, call_next):
    request.state.request_id = str(uuid.uuid4())
    start = time.perf_counter()
    response = await call_next(request)
    latency_ms = (time.perf_counter() - start) * 1000
    response.headers["X-Request-ID"] = request.state.request_id
    log.info(
        "request_id=%s method=%s path=%s status=%s latency_ms=%.2f",
        request.state.request_id,
        request.method,
        request.url.path,
        response.status_code,
        latency_ms,
    )
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(auth_router)
app.include_router(conversations_router)
app.include_router(simulations_router)

# Local backend: the transcription provider fetches uploads from public_upload_base_url
if settings.storage_backend == "local":
    app.mount(
        "/uploads",
        StaticFiles(directory=settings.local_upload_dir, check_dir=False),
        name="uploads",
    )


@app.get("/health")
def health():
    database = "ok"
    try:
        with Session(engine) as db:
            db.connection().execute(text("SELECT 1"))
    except Exception as e:
        log.warning("Health check database error: %s", e)
        database = "error"
    return {
        "status": "ok",
        "database": database,
        "openai_configured": is_openai_configured(),
        "assemblyai_configured": is_assemblyai_configured(),
        "storage_backend": settings.storage_backend,
    }


@app.get("/health/ai")
def health_ai(request: Request):
    """One minimal OpenAI call; reports whether the configured keys work right now."""
    if not is_openai_configured():
        return {"ok": False, "latency_ms": 0, "error": "OPENAI_API_KEY is not configured."}
    ok, latency_ms, error = request.app.state.insights.ping()
    return {"ok": ok, "latency_ms": latency_ms, "error": error}
