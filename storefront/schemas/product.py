from pydantic import Field
from typing import Optional

from storefront.schemas.base import CamelModel


class ProductCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    price: float = Field(..., ge=0)
    description: Optional[str] = None
    image_url: Optional[str] = None


class ProductUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    price: Optional[float] = Field(None, ge=0)
    description: Optional[str] = None
    image_url: Optional[str] = None


class ProductResponse(CamelModel):
    id: int
    name: str
    price: float
    description: Optional[str] = None
    image_url: Optional[str] = None
