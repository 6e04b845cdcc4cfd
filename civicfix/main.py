from __future__ import annotations

import time
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Depends, HTTPException
from fastapi.exception_handlers import http_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from starlette.responses import JSONResponse

from civicfix.core.config import settings
from civicfix.core.errors import ValidationError, WorkflowError
from civicfix.auth.deps import get_current_user
from civicfix.db.immutability import register_immutability_listeners

# Import models to populate SQLAlchemy metadata
import civicfix.db.models  # noqa: F401

from civicfix.auth.router import router as auth_router
from civicfix.modules.reports.router import router as reports_router
from civicfix.modules.users.router import router as users_router


logger = logging.getLogger("civicfix")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # DB migrations are handled by the separate "migrate" script.
    register_immutability_listeners()
    yield


app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

# CORS (Access-Control-Allow-*) - configurable
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins(),
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
)

# Compression for JSON (helps under load)
app.add_middleware(GZipMiddleware, minimum_size=800)


@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    start = time.perf_counter()
    resp = await call_next(request)
    resp.headers["X-Process-Time-ms"] = f"{(time.perf_counter() - start) * 1000:.2f}"
    return resp


@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    resp = await call_next(request)
    resp.headers["X-Content-Type-Options"] = "nosniff"
    resp.headers["X-Frame-Options"] = "SAMEORIGIN"
    resp.headers["Referrer-Policy"] = "same-origin"
    return resp


@app.exception_handler(WorkflowError)
async def workflow_exc_handler(request: Request, exc: WorkflowError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def _describe_validation_errors(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc or 'body'}: {err.get('msg', 'invalid value')}")
    return "; ".join(parts) or "invalid request"


@app.exception_handler(RequestValidationError)
async def request_validation_exc_handler(request: Request, exc: RequestValidationError):
    # Malformed payloads answer like any other client error: 400 {kind, message}.
    err = ValidationError(_describe_validation_errors(exc))
    return JSONResponse(status_code=err.status_code, content=err.to_dict())


@app.exception_handler(HTTPException)
async def http_exc_handler(request: Request, exc: HTTPException):
    if exc.status_code == 401:
        resp = await http_exception_handler(request, exc)
        resp.headers["X-Session-Expired"] = "1"
        resp.delete_cookie("sid")
        return resp
    return await http_exception_handler(request, exc)


@app.exception_handler(Exception)
async def unhandled_exc_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception", exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})


# Routers
app.include_router(auth_router)
app.include_router(reports_router)
app.include_router(users_router)


@app.get("/health", response_class=JSONResponse)
def health():
    return {"status": "ok", "app": settings.APP_NAME}


@app.get("/health/auth", response_class=JSONResponse)
def health_auth(user=Depends(get_current_user)):
    return {"status": "ok", "authenticated": True, "user_id": user.id}
