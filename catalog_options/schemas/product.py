from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

class ProductBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    base_price: Decimal = Decimal("0")
    category_id: Optional[int] = None
    is_active: bool = True

class ProductCreate(ProductBase):
    pass

class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    base_price: Optional[Decimal] = None
    category_id: Optional[int] = None
    is_active: Optional[bool] = None

class Product(ProductBase):
    id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class ProductAttributeOverrides(BaseModel):
    """Nullable overrides; a null or blank value falls back to the next tier."""
    override_display_name: Optional[str] = Field(None, max_length=100)
    override_description: Optional[str] = None
    is_required: Optional[bool] = None
    sort_order: Optional[int] = None

class ProductAttributeCreate(ProductAttributeOverrides):
    attribute_id: int
    category_attribute_id: Optional[int] = None

class ProductAttributeUpdate(ProductAttributeOverrides):
    pass
