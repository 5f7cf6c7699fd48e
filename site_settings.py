"""
Singleton display settings (contact, social, general) with built-in fallbacks.
"""

import copy
import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends
from pymongo import ReturnDocument

from auth import Identity, get_identity
from database import get_db, now
from errors import NotFoundError
from schemas import SETTINGS_TYPES, Settings as SettingsSchema

logger = logging.getLogger(__name__)

router = APIRouter()

DEFAULTS: Dict[str, Dict[str, Any]] = {
    "contact": {
        "address": "123 Agricultural Avenue, Colombo 07, Sri Lanka",
        "phone": "+94 11 234 5678",
        "email": "info@ceycanagro.com",
        "website": "www.ceycanagro.com",
        "description": "CeyCan Agro is a leading agricultural company in Sri Lanka, dedicated to providing the highest quality agricultural products to our customers.",
    },
    "social": {
        "facebook": "https://facebook.com/ceycanagro",
        "instagram": "https://instagram.com/ceycanagro",
        "twitter": "https://twitter.com/ceycanagro",
        "linkedin": "https://linkedin.com/company/ceycanagro",
    },
    "general": {},
}


def _check_type(settings_type: str) -> None:
    if settings_type not in SETTINGS_TYPES:
        raise NotFoundError(f"Unknown settings type: {settings_type}")


def get_settings(db, settings_type: str) -> Dict[str, Any]:
    _check_type(settings_type)
    record = db["settings"].find_one({"type": settings_type})
    if not record:
        return copy.deepcopy(DEFAULTS[settings_type])
    return record.get("data", {})


def upsert_settings(db, settings_type: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    _check_type(settings_type)
    settings = SettingsSchema(type=settings_type, data=payload)
    stamp = now()
    record = db["settings"].find_one_and_update(
        {"type": settings.type},
        {
            "$set": {"data": settings.data, "updated_at": stamp},
            "$setOnInsert": {"type": settings_type, "created_at": stamp},
        },
        upsert=True,
        return_document=ReturnDocument.AFTER,
    )
    return record["data"]


# Routes

@router.get("/{settings_type}")
def read_settings(settings_type: str, db=Depends(get_db)):
    return get_settings(db, settings_type)


@router.put("/{settings_type}")
def write_settings(settings_type: str, payload: Dict[str, Any] = Body(...), db=Depends(get_db),
                   identity: Identity = Depends(get_identity)):
    upsert_settings(db, settings_type, payload)
    logger.info("%s settings updated by %s", settings_type.capitalize(), identity.name)
    return {"success": True, "message": f"{settings_type.capitalize()} settings updated"}
