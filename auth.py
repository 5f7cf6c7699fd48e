"""
Password hashing, token issuance and the request auth gates.

Any valid token grants admin capability; only user management asks for the
stricter super-admin role, which is read straight from the token claims.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import Depends, Header
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel

import config
from database import now, serialize_doc
from errors import AccountDisabledError, AuthError, ForbiddenError, InvalidCredentialsError

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ROLE_ADMIN = "admin"
ROLE_SUPERADMIN = "superadmin"
DISPLAY_SUPERADMIN = "super_admin"

ADMIN_ROLES = {ROLE_ADMIN, ROLE_SUPERADMIN, DISPLAY_SUPERADMIN}
SUPER_ADMIN_ROLES = {ROLE_SUPERADMIN, DISPLAY_SUPERADMIN}


def to_display_role(role: Optional[str]) -> Optional[str]:
    return DISPLAY_SUPERADMIN if role == ROLE_SUPERADMIN else role


def to_storage_role(role: Optional[str]) -> Optional[str]:
    return ROLE_SUPERADMIN if role == DISPLAY_SUPERADMIN else role


# Utilities

def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    if not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # unrecognised hash format
        return False


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    issued = datetime.now(timezone.utc)
    expire = issued + (expires_delta if expires_delta is not None else timedelta(days=config.TOKEN_EXPIRE_DAYS))
    to_encode.update({"iat": issued, "exp": expire})
    return jwt.encode(to_encode, config.JWT_SECRET, algorithm=config.ALGORITHM)


def decode_token(token: str) -> dict:
    return jwt.decode(token, config.JWT_SECRET, algorithms=[config.ALGORITHM])


def authenticate(db, email: str, password: str) -> Dict[str, Any]:
    """Check credentials, stamp last_login and return the login payload with a fresh token."""
    user = db["user"].find_one({"email": email})
    if not user or not verify_password(password, user.get("password_hash", "")):
        raise InvalidCredentialsError()
    if not user.get("active", True):
        raise AccountDisabledError()

    stamp = now()
    db["user"].update_one({"_id": user["_id"]}, {"$set": {"last_login": stamp, "updated_at": stamp}})

    user_id = str(user["_id"])
    token = create_access_token({
        "id": user_id,
        "name": user.get("name"),
        "email": user.get("email"),
        "role": user.get("role"),
    })
    logger.info("User logged in: %s (%s)", user.get("name"), user.get("email"))
    return {
        "id": user_id,
        "name": user.get("name"),
        "email": user.get("email"),
        "role": to_display_role(user.get("role")),
        "token": token,
    }


def public_user(doc: Dict[str, Any]) -> Dict[str, Any]:
    user = serialize_doc(doc)
    user.pop("password_hash", None)
    user["role"] = to_display_role(user.get("role"))
    return user


# Request identity

class Identity(BaseModel):
    id: str
    name: str
    email: Optional[str] = None
    role: Optional[str] = None
    is_admin: bool = True


def get_identity(authorization: Optional[str] = Header(default=None)) -> Identity:
    if not authorization or not authorization.startswith("Bearer "):
        raise AuthError("Not authorized, no token")
    token = authorization.split(" ", 1)[1].strip()
    try:
        payload = decode_token(token)
    except JWTError as e:
        logger.info("Token rejected: %s", e)
        raise AuthError("Not authorized, token failed")
    user_id = payload.get("id") or payload.get("sub")
    if not user_id:
        logger.info("Token rejected: no identity claim")
        raise AuthError("Not authorized, token failed")
    return Identity(
        id=str(user_id),
        name=payload.get("name") or "Admin",
        email=payload.get("email"),
        role=payload.get("role"),
        is_admin=True,
    )


def require_admin(identity: Identity = Depends(get_identity)) -> Identity:
    if identity.is_admin or identity.role in ADMIN_ROLES:
        return identity
    logger.warning("Admin access denied for user: %s", identity.email)
    raise ForbiddenError("Not authorized as admin")


def require_super_admin(identity: Identity = Depends(get_identity)) -> Identity:
    if identity.role in SUPER_ADMIN_ROLES:
        return identity
    logger.warning("Super admin access denied for user: %s", identity.email)
    raise ForbiddenError("Not authorized as super admin")
