from decimal import Decimal
from typing import Any, Dict, List, Optional
from pydantic import AliasChoices, BaseModel, ConfigDict, Field

class OptionCreate(BaseModel):
    value: str = Field(..., min_length=1, max_length=255)
    display_value: Optional[str] = Field(None, max_length=255)
    sort_order: Optional[int] = None
    price_adjustment: Optional[Decimal] = None
    metadata: Optional[Dict[str, Any]] = None
    base_option_id: Optional[int] = None

class ProductOptionCreate(OptionCreate):
    category_option_id: Optional[int] = None

class OptionUpdate(BaseModel):
    """Fields sent as null clear the stored override."""
    value: Optional[str] = Field(None, min_length=1, max_length=255)
    display_value: Optional[str] = Field(None, max_length=255)
    sort_order: Optional[int] = None
    price_adjustment: Optional[Decimal] = None
    metadata: Optional[Dict[str, Any]] = None
    base_option_id: Optional[int] = None

class ProductOptionUpdate(OptionUpdate):
    category_option_id: Optional[int] = None

class OptionReorder(BaseModel):
    option_ids: List[int]

class StoredOption(BaseModel):
    id: int
    value: str
    display_value: str
    sort_order: int
    price_adjustment: Optional[Decimal] = None
    metadata: Optional[Dict[str, Any]] = Field(
        None, validation_alias=AliasChoices("option_metadata", "metadata")
    )
    base_option_id: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)

class CategoryOption(StoredOption):
    category_attribute_id: int

class ProductOption(StoredOption):
    product_attribute_id: int
    category_option_id: Optional[int] = None
    is_custom: bool = False

class EffectiveOption(BaseModel):
    id: int
    tier: str
    attribute_id: int
    value: str
    display_value: str
    sort_order: int
    price_adjustment: Decimal
    price_adjustment_tier: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    base_option_id: Optional[int] = None
    category_option_id: Optional[int] = None
    is_custom: bool = False

    model_config = ConfigDict(from_attributes=True)
