from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict
from catalog_options.models.attribute import AttributeType
from .option import EffectiveOption

class ResolvedAttribute(BaseModel):
    """An attribute as seen at the product or category tier, overrides applied."""
    attribute_id: int
    name: str
    attribute_type: AttributeType
    display_name: str
    description: Optional[str] = None
    is_required: bool
    is_filterable: bool
    is_variant: bool
    is_swatch: bool
    is_comparable: bool
    display_in_product_summary: bool
    sort_order: int
    validation_rules: Optional[Dict[str, Any]] = None
    product_id: Optional[int] = None
    product_attribute_id: Optional[int] = None
    category_id: Optional[int] = None
    category_attribute_id: Optional[int] = None
    is_category_sourced: bool = False
    sources: Dict[str, Optional[str]] = {}

    model_config = ConfigDict(from_attributes=True)

class ResolvedAttributeDetail(ResolvedAttribute):
    option_source: Optional[str] = None
    options: List[EffectiveOption] = []

    @classmethod
    def from_effective(cls, attribute, options, option_source: str) -> "ResolvedAttributeDetail":
        detail = cls.model_validate(attribute)
        detail.options = [EffectiveOption.model_validate(option) for option in options]
        detail.option_source = option_source
        return detail
