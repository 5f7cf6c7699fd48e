"""
Database Schemas

Each Pydantic model below describes one MongoDB collection.
Model name lowercased is the collection name:
- Category -> "category"
- Product -> "product"
- User -> "user"
- Settings -> "settings"
"""

from datetime import datetime
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, EmailStr, Field

SETTINGS_TYPES = ("contact", "social", "general")


class Category(BaseModel):
    name: str = Field(..., min_length=1, description="Unique display name")
    description: str = Field("", description="Short description")
    icon: str = Field("ChefHat", description="Symbolic icon tag")
    image: str = Field("", description="Image URL")
    status: Literal["active", "inactive"] = "active"


class Product(BaseModel):
    name: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    image: str = Field(..., min_length=1)
    price: str = Field(..., min_length=1, description="Free-form display price, e.g. 'LKR 450 / kg'")
    in_stock: bool = True
    category: str = Field(..., description="Category id")


class User(BaseModel):
    name: str = Field(..., description="Full name")
    email: EmailStr = Field(..., description="Email address")
    password_hash: str = Field(..., description="BCrypt hashed password")
    role: Literal["admin", "superadmin"] = "admin"
    active: bool = True
    last_login: Optional[datetime] = None


class Settings(BaseModel):
    type: Literal["contact", "social", "general"]
    data: Dict[str, Any] = Field(..., description="Free-form payload")
