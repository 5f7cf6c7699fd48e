"""
Products. Every product must point at an existing category.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from auth import Identity, require_admin
from database import create_document, get_db, get_documents, now, parse_object_id, serialize_doc
from errors import InvalidCategoryError, NotFoundError
from schemas import Product as ProductSchema

logger = logging.getLogger(__name__)

router = APIRouter()


class ProductIn(BaseModel):
    name: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    image: str = Field(..., min_length=1)
    price: str = Field(..., min_length=1)
    in_stock: bool = True
    category: str


class ProductUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    price: Optional[str] = None
    in_stock: Optional[bool] = None
    category: Optional[str] = None


def _resolve_category(db, category_id: Optional[str]) -> Optional[str]:
    """Canonical id string of an existing category, or None."""
    obj_id = parse_object_id(category_id)
    if obj_id is None or db["category"].find_one({"_id": obj_id}) is None:
        return None
    return str(obj_id)


def _find(db, product_id: str) -> Dict[str, Any]:
    obj_id = parse_object_id(product_id)
    doc = db["product"].find_one({"_id": obj_id}) if obj_id else None
    if not doc:
        raise NotFoundError("Product not found")
    return doc


def _populate_category(db, product: Dict[str, Any]) -> Dict[str, Any]:
    obj_id = parse_object_id(product.get("category"))
    category = db["category"].find_one({"_id": obj_id}, {"name": 1}) if obj_id else None
    if category:
        product["category"] = {"id": str(category["_id"]), "name": category.get("name")}
    return product


def list_products(db) -> List[Dict[str, Any]]:
    return [_populate_category(db, serialize_doc(doc)) for doc in get_documents(db, "product")]


def list_by_category(db, category_id: str) -> List[Dict[str, Any]]:
    obj_id = parse_object_id(category_id)
    if obj_id is not None:
        category_id = str(obj_id)
    return [serialize_doc(doc) for doc in get_documents(db, "product", {"category": category_id})]


def get_product(db, product_id: str) -> Dict[str, Any]:
    return _populate_category(db, serialize_doc(_find(db, product_id)))


def create_product(db, data: ProductIn) -> Dict[str, Any]:
    category_id = _resolve_category(db, data.category)
    if category_id is None:
        raise InvalidCategoryError()
    product = ProductSchema(**{**data.model_dump(), "category": category_id})
    product_id = create_document(db, "product", product.model_dump())
    logger.info("Product created: %s", product.name)
    return serialize_doc(db["product"].find_one({"_id": parse_object_id(product_id)}))


def update_product(db, product_id: str, data: ProductUpdate) -> Dict[str, Any]:
    current = _find(db, product_id)
    provided = data.model_dump(exclude_unset=True)

    if provided.get("category"):
        category_id = _resolve_category(db, provided["category"])
        if category_id is None:
            raise InvalidCategoryError()
        provided["category"] = category_id

    changes: Dict[str, Any] = {}
    for field in ("name", "description", "image", "price", "category"):
        if provided.get(field):
            changes[field] = provided[field]
    if provided.get("in_stock") is not None:
        changes["in_stock"] = provided["in_stock"]

    changes["updated_at"] = now()
    db["product"].update_one({"_id": current["_id"]}, {"$set": changes})
    return serialize_doc(db["product"].find_one({"_id": current["_id"]}))


def delete_product(db, product_id: str) -> None:
    current = _find(db, product_id)
    db["product"].delete_one({"_id": current["_id"]})
    logger.info("Product removed: %s", current.get("name"))


# Routes

@router.get("")
def read_products(db=Depends(get_db)):
    return {"success": True, "data": list_products(db), "message": "Products retrieved successfully"}


@router.get("/category/{category_id}")
def read_products_by_category(category_id: str, db=Depends(get_db)):
    return {
        "success": True,
        "data": list_by_category(db, category_id),
        "message": "Products for category retrieved successfully",
    }


@router.get("/{product_id}")
def read_product(product_id: str, db=Depends(get_db)):
    return get_product(db, product_id)


@router.post("", status_code=201)
def post_product(data: ProductIn, db=Depends(get_db), identity: Identity = Depends(require_admin)):
    return create_product(db, data)


@router.put("/{product_id}")
def put_product(product_id: str, data: ProductUpdate, db=Depends(get_db),
                identity: Identity = Depends(require_admin)):
    return update_product(db, product_id, data)


@router.delete("/{product_id}")
def remove_product(product_id: str, db=Depends(get_db), identity: Identity = Depends(require_admin)):
    delete_product(db, product_id)
    return {"message": "Product removed"}
