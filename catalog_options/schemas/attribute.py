from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from catalog_options.models.attribute import AttributeType

class AttributeBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    display_name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    attribute_type: AttributeType = AttributeType.SELECT
    is_filterable: bool = False
    is_swatch: bool = False
    is_required: bool = False
    is_variant: bool = False
    is_comparable: bool = False
    display_in_product_summary: bool = False
    sort_order: int = 0
    validation_rules: Optional[Dict[str, Any]] = None

class AttributeCreate(AttributeBase):
    pass

class AttributeUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    display_name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    attribute_type: Optional[AttributeType] = None
    is_filterable: Optional[bool] = None
    is_swatch: Optional[bool] = None
    is_required: Optional[bool] = None
    is_variant: Optional[bool] = None
    is_comparable: Optional[bool] = None
    display_in_product_summary: Optional[bool] = None
    sort_order: Optional[int] = None
    validation_rules: Optional[Dict[str, Any]] = None

class Attribute(AttributeBase):
    id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class AttributeOptionBase(BaseModel):
    value: str = Field(..., min_length=1, max_length=255)
    display_value: Optional[str] = Field(None, max_length=255)
    sort_order: Optional[int] = None
    metadata: Optional[Dict[str, Any]] = None

class AttributeOptionCreate(AttributeOptionBase):
    pass

class AttributeOptionUpdate(BaseModel):
    value: Optional[str] = Field(None, min_length=1, max_length=255)
    display_value: Optional[str] = Field(None, max_length=255)
    sort_order: Optional[int] = None
    metadata: Optional[Dict[str, Any]] = None

class AttributeOption(BaseModel):
    id: int
    attribute_id: int
    value: str
    display_value: str
    sort_order: int
    # ORM rows keep this column as option_metadata
    metadata: Optional[Dict[str, Any]] = Field(
        None, validation_alias=AliasChoices("option_metadata", "metadata")
    )

    model_config = ConfigDict(from_attributes=True)

class AttributeWithOptions(Attribute):
    options: List[AttributeOption] = []
