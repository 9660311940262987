# schema/product.py
from pydantic import BaseModel, Field
from typing import Optional

class ProductCreate(BaseModel):
    id: str = Field(..., alias="_id", min_length=1)
    name: str = Field(..., min_length=1)
    description: str
    price: float = Field(..., ge=0)
    category: str = Field(..., min_length=1)
    stock: int = Field(..., ge=0)
    sku: str = Field(..., min_length=1)
    image_url: Optional[str] = None

    class Config:
        populate_by_name = True

class ProductResponse(BaseModel):
    """Product as embedded in query results; projections may omit fields"""
    id: str = Field(alias="_id")
    name: str
    description: Optional[str] = None
    price: Optional[float] = None
    category: Optional[str] = None
    stock: Optional[int] = None
    sku: Optional[str] = None
    image_url: Optional[str] = None

    class Config:
        populate_by_name = True
