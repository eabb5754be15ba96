"""Acting-user resolution: password hashing, JWT tokens, and FastAPI dependencies."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
from fastapi import Depends, Request
from jose import JWTError, jwt

import config
from errors import DuplicateRecord, InvalidInput, Unauthorized
from schemas import UserRecord
from storage import Storage

logger = logging.getLogger(__name__)


# ---------- Password helpers ----------

def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))


# ---------- JWT helpers ----------

def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, config.SECRET_KEY, algorithm=config.ALGORITHM)


def decode_token(token: str) -> Optional[dict]:
    try:
        return jwt.decode(token, config.SECRET_KEY, algorithms=[config.ALGORITHM])
    except JWTError:
        return None


# ---------- User CRUD ----------

def create_user(store: Storage, username: str, password: str) -> UserRecord:
    if len(password) < 6:
        raise InvalidInput("Password must be at least 6 characters")
    try:
        user = store.create_user({"username": username, "password": hash_password(password)})
    except DuplicateRecord:
        raise InvalidInput("Username already taken")
    logger.info("Created user %s", username)
    return user


def authenticate_user(store: Storage, username: str, password: str) -> Optional[UserRecord]:
    user = store.get_user_by_username(username)
    if not user or not verify_password(password, user.password):
        return None
    return user


def get_or_create_default_user(store: Storage) -> UserRecord:
    """Look up the default user, provisioning it on first use."""
    user = store.get_user_by_username(config.DEFAULT_USERNAME)
    if user:
        return user
    try:
        user = store.create_user({
            "username": config.DEFAULT_USERNAME,
            "password": hash_password(config.DEFAULT_PASSWORD),
        })
        logger.info("Provisioned default user %s", config.DEFAULT_USERNAME)
        return user
    except DuplicateRecord:
        # another request provisioned it first
        return store.get_user_by_username(config.DEFAULT_USERNAME)


# ---------- FastAPI dependencies ----------

def get_storage(request: Request) -> Storage:
    return request.app.state.storage


def _get_token_from_request(request: Request) -> Optional[str]:
    """Extract JWT from Authorization header or cookie."""
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return auth_header.split(" ", 1)[1]
    return request.cookies.get("access_token")


def _user_from_token(request: Request, store: Storage, token: str) -> UserRecord:
    payload = decode_token(token)
    if payload is None:
        logger.warning("Invalid token for %s", request.url.path)
        raise Unauthorized("Invalid token")
    username: str = payload.get("sub", "")
    user = store.get_user_by_username(username)
    if user is None:
        logger.warning("Token user not found: %s", username)
        raise Unauthorized("User not found")
    return user


def get_authenticated_user(
    request: Request,
    store: Storage = Depends(get_storage),
) -> UserRecord:
    """The token's user; never falls back to the default user."""
    token = _get_token_from_request(request)
    if not token:
        logger.warning("No token for %s", request.url.path)
        raise Unauthorized("Not authenticated")
    return _user_from_token(request, store, token)


def get_acting_user(
    request: Request,
    store: Storage = Depends(get_storage),
) -> UserRecord:
    """Same as get_authenticated_user but anonymous requests act as the default user."""
    token = _get_token_from_request(request)
    if not token:
        if not config.ALLOW_DEFAULT_USER:
            raise Unauthorized("Not authenticated")
        return get_or_create_default_user(store)
    return _user_from_token(request, store, token)
