"""
Admin accounts: login, profile and super-admin user management.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, EmailStr
from pymongo import DESCENDING

from auth import (
    ROLE_ADMIN,
    Identity,
    authenticate,
    get_identity,
    hash_password,
    public_user,
    require_super_admin,
    to_display_role,
    to_storage_role,
)
from database import create_document, get_db, get_documents, now, parse_object_id
from errors import DuplicateNameError, NotFoundError, ValidationError
from schemas import User as UserSchema

logger = logging.getLogger(__name__)

router = APIRouter()


class LoginInput(BaseModel):
    email: EmailStr
    password: str


class LoginResponse(BaseModel):
    id: str
    name: str
    email: str
    role: Optional[str] = None
    token: str


class UserCreate(BaseModel):
    name: str
    email: EmailStr
    password: str
    role: Optional[str] = None
    active: Optional[bool] = None


class UserUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    password: Optional[str] = None
    role: Optional[str] = None
    active: Optional[bool] = None


def _find(db, user_id: str) -> Dict[str, Any]:
    obj_id = parse_object_id(user_id)
    doc = db["user"].find_one({"_id": obj_id}) if obj_id else None
    if not doc:
        raise NotFoundError("User not found")
    return doc


def _storage_role(role: Optional[str]) -> str:
    stored = to_storage_role(role) or ROLE_ADMIN
    if stored not in ("admin", "superadmin"):
        raise ValidationError(f"Invalid role: {role}")
    return stored


def list_users(db) -> List[Dict[str, Any]]:
    return [public_user(doc) for doc in get_documents(db, "user", sort=[("created_at", DESCENDING)])]


def get_user(db, user_id: str) -> Dict[str, Any]:
    return public_user(_find(db, user_id))


def create_user(db, data: UserCreate) -> Dict[str, Any]:
    if db["user"].find_one({"email": str(data.email)}):
        raise DuplicateNameError("User with this email already exists")
    user = UserSchema(
        name=data.name,
        email=data.email,
        password_hash=hash_password(data.password),
        role=_storage_role(data.role),
        active=data.active if data.active is not None else True,
    )
    record = user.model_dump()
    record["email"] = str(data.email)
    user_id = create_document(db, "user", record)
    logger.info("Admin user created: %s (%s)", user.name, user.email)
    return public_user(db["user"].find_one({"_id": parse_object_id(user_id)}))


def update_user(db, user_id: str, data: UserUpdate) -> Dict[str, Any]:
    current = _find(db, user_id)
    provided = data.model_dump(exclude_unset=True)

    changes: Dict[str, Any] = {}
    if provided.get("name"):
        changes["name"] = provided["name"]
    if provided.get("email"):
        email = str(provided["email"])
        if email != current.get("email") and db["user"].find_one({"email": email, "_id": {"$ne": current["_id"]}}):
            raise DuplicateNameError("User with this email already exists")
        changes["email"] = email
    if provided.get("role"):
        changes["role"] = _storage_role(provided["role"])
    if provided.get("active") is not None:
        changes["active"] = provided["active"]
    if provided.get("password"):
        changes["password_hash"] = hash_password(provided["password"])

    changes["updated_at"] = now()
    db["user"].update_one({"_id": current["_id"]}, {"$set": changes})
    return public_user(db["user"].find_one({"_id": current["_id"]}))


def delete_user(db, user_id: str, identity: Identity) -> None:
    current = _find(db, user_id)
    if str(current["_id"]) == identity.id:
        raise ValidationError("You cannot delete your own account")
    db["user"].delete_one({"_id": current["_id"]})
    logger.info("User removed: %s", current.get("email"))


# Routes

@router.post("/login", response_model=LoginResponse)
def login(payload: LoginInput, db=Depends(get_db)):
    return authenticate(db, str(payload.email), payload.password)


@router.get("/profile")
def profile(identity: Identity = Depends(get_identity), db=Depends(get_db)):
    user = _find(db, identity.id)
    return {
        "id": str(user["_id"]),
        "name": user.get("name"),
        "email": user.get("email"),
        "role": to_display_role(user.get("role")),
    }


@router.get("")
def read_users(db=Depends(get_db), identity: Identity = Depends(require_super_admin)):
    return list_users(db)


@router.post("", status_code=201)
def post_user(data: UserCreate, db=Depends(get_db), identity: Identity = Depends(require_super_admin)):
    return {"success": True, "data": create_user(db, data), "message": "Admin user created successfully"}


@router.get("/{user_id}")
def read_user(user_id: str, db=Depends(get_db), identity: Identity = Depends(require_super_admin)):
    return get_user(db, user_id)


@router.put("/{user_id}")
def put_user(user_id: str, data: UserUpdate, db=Depends(get_db), identity: Identity = Depends(require_super_admin)):
    return update_user(db, user_id, data)


@router.delete("/{user_id}")
def remove_user(user_id: str, db=Depends(get_db), identity: Identity = Depends(require_super_admin)):
    delete_user(db, user_id, identity)
    return {"message": "User removed"}
