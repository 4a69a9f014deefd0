from datetime import date, datetime
from decimal import Decimal
from typing import Any, List, Optional, Union
from pydantic import BaseModel, ConfigDict
from catalog_options.models.attribute import AttributeType

class AttributeValueSlots(BaseModel):
    """Exactly one slot may be set; which one depends on the attribute type."""
    option_id: Optional[int] = None
    text_value: Optional[str] = None
    number_value: Optional[float] = None
    date_value: Optional[Union[datetime, date]] = None
    boolean_value: Optional[bool] = None

class AttributeValueCreate(AttributeValueSlots):
    attribute_id: int
    price_adjustment: Optional[Decimal] = None
    sort_order: int = 0

class AttributeValueUpdate(AttributeValueSlots):
    price_adjustment: Optional[Decimal] = None
    sort_order: Optional[int] = None

class AttributeValue(AttributeValueSlots):
    id: int
    product_id: int
    attribute_id: int
    price_adjustment: Optional[Decimal] = None
    sort_order: int
    value: Any = None

    model_config = ConfigDict(from_attributes=True)

class AggregatedValue(BaseModel):
    value: Any
    display_value: str
    option_id: Optional[int] = None
    product_count: int

    model_config = ConfigDict(from_attributes=True)

class AggregatedAttribute(BaseModel):
    attribute_id: int
    name: str
    display_name: str
    attribute_type: AttributeType
    is_filterable: bool
    sort_order: int
    values: List[AggregatedValue] = []

    model_config = ConfigDict(from_attributes=True)
