from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

class CategoryBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    parent_id: Optional[int] = None

class CategoryCreate(CategoryBase):
    pass

class Category(CategoryBase):
    id: int
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class CategoryAttributeOverrides(BaseModel):
    """Nullable overrides; a null or blank value falls back to the global attribute."""
    override_display_name: Optional[str] = Field(None, max_length=100)
    override_description: Optional[str] = None
    is_required: Optional[bool] = None
    is_filterable: Optional[bool] = None
    sort_order: Optional[int] = None

class CategoryAttributeCreate(CategoryAttributeOverrides):
    attribute_id: int

class CategoryAttributeUpdate(CategoryAttributeOverrides):
    pass
