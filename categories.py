"""
Categories and the delete guard that protects products referencing them.
"""

import logging
from typing import Any, Dict, List, Literal, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from auth import Identity, require_admin
from database import create_document, get_db, get_documents, now, parse_object_id, serialize_doc
from errors import DuplicateNameError, HasDependentsError, NotFoundError, ValidationError
from schemas import Category as CategorySchema

logger = logging.getLogger(__name__)

router = APIRouter()


class CategoryIn(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    icon: Optional[str] = None
    image: Optional[str] = None


class CategoryUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    icon: Optional[str] = None
    image: Optional[str] = None
    status: Optional[Literal["active", "inactive"]] = None


def count_products(db, category_id: str) -> int:
    return db["product"].count_documents({"category": category_id})


def _with_count(db, doc: Dict[str, Any]) -> Dict[str, Any]:
    category = serialize_doc(doc)
    category["products"] = count_products(db, category["id"])
    return category


def _find(db, category_id: str) -> Dict[str, Any]:
    obj_id = parse_object_id(category_id)
    doc = db["category"].find_one({"_id": obj_id}) if obj_id else None
    if not doc:
        raise NotFoundError("Category not found")
    return doc


def list_categories(db) -> List[Dict[str, Any]]:
    return [_with_count(db, doc) for doc in get_documents(db, "category", sort=[("name", 1)])]


def get_category(db, category_id: str) -> Dict[str, Any]:
    return _with_count(db, _find(db, category_id))


def create_category(db, data: CategoryIn) -> Dict[str, Any]:
    if not data.name:
        raise ValidationError("Category name is required")
    if db["category"].find_one({"name": data.name}):
        raise DuplicateNameError("Category with this name already exists")

    category = CategorySchema(
        name=data.name,
        description=data.description or "",
        icon=data.icon or "ChefHat",
        image=data.image or "",
        status="active",
    )
    category_id = create_document(db, "category", category.model_dump())
    created = serialize_doc(db["category"].find_one({"_id": parse_object_id(category_id)}))
    created["products"] = 0
    logger.info("Category created: %s", created["name"])
    return created


def update_category(db, category_id: str, data: CategoryUpdate) -> Dict[str, Any]:
    current = _find(db, category_id)
    provided = data.model_dump(exclude_unset=True)

    changes: Dict[str, Any] = {}
    # empty name, icon or status count as not provided
    for field in ("name", "icon", "status"):
        if provided.get(field):
            changes[field] = provided[field]
    for field in ("description", "image"):
        if provided.get(field) is not None:
            changes[field] = provided[field]

    name = changes.get("name")
    if name and name != current.get("name"):
        clash = db["category"].find_one({"name": name, "_id": {"$ne": current["_id"]}})
        if clash:
            raise DuplicateNameError("Category with this name already exists")

    changes["updated_at"] = now()
    db["category"].update_one({"_id": current["_id"]}, {"$set": changes})
    return _with_count(db, db["category"].find_one({"_id": current["_id"]}))


def delete_category(db, category_id: str) -> None:
    current = _find(db, category_id)
    # read-then-delete: a product inserted in between is not caught
    if count_products(db, str(current["_id"])) > 0:
        raise HasDependentsError(
            "Cannot delete category with associated products. Remove or reassign products first."
        )
    db["category"].delete_one({"_id": current["_id"]})
    logger.info("Category removed: %s", current.get("name"))


# Routes

@router.get("")
def read_categories(db=Depends(get_db)):
    return {"success": True, "data": list_categories(db), "message": "Categories retrieved successfully"}


@router.get("/{category_id}")
def read_category(category_id: str, db=Depends(get_db)):
    return {"success": True, "data": get_category(db, category_id), "message": "Category retrieved successfully"}


@router.post("", status_code=201)
def post_category(data: CategoryIn, db=Depends(get_db), identity: Identity = Depends(require_admin)):
    return {"success": True, "data": create_category(db, data), "message": "Category created successfully"}


@router.put("/{category_id}")
def put_category(category_id: str, data: CategoryUpdate, db=Depends(get_db),
                 identity: Identity = Depends(require_admin)):
    return {"success": True, "data": update_category(db, category_id, data), "message": "Category updated successfully"}


@router.delete("/{category_id}")
def remove_category(category_id: str, db=Depends(get_db), identity: Identity = Depends(require_admin)):
    delete_category(db, category_id)
    return {"success": True, "message": "Category removed"}
