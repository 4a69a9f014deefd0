from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field

# Selections map attribute ids to option values, e.g. {"1": "Red", "2": "L"}
Selection = Dict[str, Any]

class CombinationCreate(BaseModel):
    selection: Selection
    price_adjustment: Decimal = Decimal("0")

class CombinationUpdate(BaseModel):
    price_adjustment: Decimal

class Combination(BaseModel):
    id: int
    product_id: int
    combination_hash: str
    price_adjustment: Decimal
    attributes: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class PriceRequest(BaseModel):
    selection: Selection = Field(default_factory=dict)
    base_price: Optional[Decimal] = None

class BreakdownLine(BaseModel):
    attribute_id: int
    option_id: int
    value: str
    adjustment: Decimal

    model_config = ConfigDict(from_attributes=True)

class PriceQuote(BaseModel):
    product_id: int
    base_price: Decimal
    final_price: Decimal
    total_adjustment: Decimal
    combination_hash: str
    matched_combination_id: Optional[int] = None
    breakdown: List[BreakdownLine] = []

    model_config = ConfigDict(from_attributes=True)
