"""FolioForge  --  Main FastAPI application."""

import logging
import os
from typing import Any, Optional

from fastapi import (
    FastAPI, Request, Depends, UploadFile, File, Body, status,
)
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

import config
from auth import (
    authenticate_user, create_access_token, create_user, get_acting_user, get_authenticated_user,
    get_storage,
)
from database import build_engine, build_session_factory, init_db
from errors import AppError, InvalidInput, Unauthorized
from aggregator import GitHubAggregator, HttpGitHubClient
from schemas import UserRecord, errors_message, validation_errors
from services import (
    get_portfolio_data, get_portfolio_record, list_contact_messages, ordered_projects,
    submit_contact, upsert_portfolio,
)
from storage import MemStorage, SqlStorage, Storage
from uploads import URL_PREFIX, save_image

# ---------- Logging ----------
logging.basicConfig(level=config.LOG_LEVEL, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
logger = logging.getLogger(__name__)


def build_storage(backend: str = config.STORAGE_BACKEND) -> Storage:
    if backend == "sql":
        engine = build_engine(config.DATABASE_URL)
        init_db(engine)
        return SqlStorage(build_session_factory(engine))
    if backend != "memory":
        raise ValueError(f"Unknown STORAGE_BACKEND {backend!r}")
    return MemStorage()


# ---------- App setup ----------
app = FastAPI(title="FolioForge", version="1.0.0")

limiter = Limiter(key_func=get_remote_address, enabled=config.RATE_LIMIT_ENABLED)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.state.storage = build_storage()
app.state.aggregator = GitHubAggregator(HttpGitHubClient())
app.state.upload_dir = config.UPLOAD_DIR

os.makedirs(config.UPLOAD_DIR, exist_ok=True)
app.mount(URL_PREFIX, StaticFiles(directory=config.UPLOAD_DIR), name="uploads")


@app.on_event("startup")
def on_startup():
    logger.info("FolioForge started with %s storage", type(app.state.storage).__name__)


@app.on_event("shutdown")
async def on_shutdown():
    client = app.state.aggregator.client
    if isinstance(client, HttpGitHubClient):
        await client.aclose()


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error("%s for %s: %s", type(exc).__name__, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    # drop the "body"/"path" prefix FastAPI puts on every location
    errors = validation_errors(
        {**err, "loc": tuple(err["loc"])[1:]} for err in exc.errors()
    )
    logger.info("Validation error for %s: %s", request.url.path, errors)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": errors_message(errors), "errors": errors},
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception for {request.url}: {str(exc)}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"message": "Internal server error"},
    )


def get_aggregator(request: Request) -> GitHubAggregator:
    return request.app.state.aggregator


# ========================================================================
# Pydantic request schemas
# ========================================================================

class SignupRequest(BaseModel):
    username: str
    password: str


class LoginRequest(BaseModel):
    username: str
    password: str


# ========================================================================
# Auth API routes
# ========================================================================

@app.get("/api/health")
async def health():
    return {"status": "ok"}


@app.post("/api/signup", status_code=status.HTTP_201_CREATED)
async def api_signup(payload: SignupRequest, store: Storage = Depends(get_storage)):
    if not payload.username.strip():
        raise InvalidInput("Username is required")
    user = create_user(store, payload.username, payload.password)
    token = create_access_token({"sub": user.username})
    resp = JSONResponse({"message": "Account created", "token": token}, status_code=status.HTTP_201_CREATED)
    resp.set_cookie("access_token", token, httponly=True, samesite="lax", max_age=86400, path="/")
    return resp


@app.post("/api/login")
async def api_login(payload: LoginRequest, store: Storage = Depends(get_storage)):
    user = authenticate_user(store, payload.username, payload.password)
    if not user:
        raise Unauthorized("Invalid credentials")
    token = create_access_token({"sub": user.username})
    resp = JSONResponse({"message": "Logged in", "token": token})
    resp.set_cookie("access_token", token, httponly=True, samesite="lax", max_age=86400, path="/")
    return resp


# ========================================================================
# Portfolio API routes
# ========================================================================

@app.get("/api/portfolio/{portfolio_id}")
async def get_portfolio(portfolio_id: str, store: Storage = Depends(get_storage)):
    return get_portfolio_data(store, portfolio_id)


@app.get("/api/portfolio/{portfolio_id}/projects")
async def get_portfolio_projects(portfolio_id: str, store: Storage = Depends(get_storage)):
    return ordered_projects(get_portfolio_record(store, portfolio_id).data)


@app.post("/api/portfolio")
async def save_portfolio(
    payload: Any = Body(...),
    user: UserRecord = Depends(get_acting_user),
    store: Storage = Depends(get_storage),
):
    portfolio, created = upsert_portfolio(store, user, payload)
    if created:
        return JSONResponse({"id": portfolio.id, "message": "created"}, status_code=status.HTTP_201_CREATED)
    return JSONResponse({"id": portfolio.id, "message": "updated"}, status_code=status.HTTP_200_OK)


@app.get("/api/portfolio/{portfolio_id}/messages")
async def get_portfolio_messages(
    portfolio_id: str,
    user: UserRecord = Depends(get_authenticated_user),
    store: Storage = Depends(get_storage),
):
    messages = list_contact_messages(store, user, portfolio_id)
    return [message.to_json() for message in messages]


@app.post("/api/upload", status_code=status.HTTP_201_CREATED)
async def upload_image(
    request: Request,
    profile_picture: Optional[UploadFile] = File(None, alias="profilePicture"),
):
    url = await save_image(profile_picture, upload_dir=request.app.state.upload_dir)
    return {"url": url}


# ========================================================================
# GitHub API route
# ========================================================================

@app.get("/api/github/")
@app.get("/api/github/{username}")
@limiter.limit(config.GITHUB_RATE_LIMIT)
async def github_projects(
    request: Request,
    username: str = "",
    aggregator: GitHubAggregator = Depends(get_aggregator),
):
    username = username.strip()
    if not username:
        raise InvalidInput("GitHub username is required")
    return await aggregator.fetch(username)


# ========================================================================
# Contact API route
# ========================================================================

@app.post("/api/contact", status_code=status.HTTP_201_CREATED)
@limiter.limit(config.CONTACT_RATE_LIMIT)
async def contact(
    request: Request,
    payload: Any = Body(...),
    store: Storage = Depends(get_storage),
):
    message = submit_contact(store, payload)
    return {"id": message.id, "message": "sent"}
