"""
Option resolution for effective attributes.

The option list of an attribute comes from exactly one tier: the product's own
options if it has any, otherwise the category's options when the attribute
was attached through a category, otherwise the global options.  Lists are
never merged across tiers.  Within the chosen list each option still resolves
``price_adjustment`` and ``metadata`` along its own links (product option ->
category option -> global option).
"""
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Sequence
from sqlalchemy.orm import Session
from catalog_options.core.exceptions import NotFoundError, ValidationError
from catalog_options.models.attribute import GlobalAttributeOption
from catalog_options.models.category_attribute import CategoryAttribute, CategoryAttributeOption
from catalog_options.models.product_attribute import ProductAttribute, ProductAttributeOption
from catalog_options.services.attribute_resolver import EffectiveAttribute
from catalog_options.services.combination_keys import check_option_rename, validate_option_value
from catalog_options.services.common import commit_or_conflict, get_or_raise
from catalog_options.services.money import ZERO, to_money
from catalog_options.services.layered import (
    CATEGORY_TIER,
    GLOBAL_TIER,
    PRODUCT_TIER,
    Layer,
    resolve_layers,
)

logger = logging.getLogger(__name__)

OPTION_FIELDS = ("price_adjustment", "metadata")
PRICED_COLUMNS = {"price_adjustment": "price_adjustment", "metadata": "option_metadata"}
GLOBAL_OPTION_COLUMNS = {"metadata": "option_metadata"}

OPTION_EDIT_FIELDS = ("value", "display_value", "sort_order", "price_adjustment", "metadata", "base_option_id")
PRODUCT_OPTION_EDIT_FIELDS = OPTION_EDIT_FIELDS + ("category_option_id",)


@dataclass
class EffectiveOption:
    id: int
    tier: str
    attribute_id: int
    value: str
    display_value: str
    sort_order: int
    price_adjustment: Decimal
    metadata: Optional[Dict[str, Any]] = None
    base_option_id: Optional[int] = None
    category_option_id: Optional[int] = None
    price_adjustment_tier: Optional[str] = None

    @property
    def is_custom(self) -> bool:
        return self.tier != GLOBAL_TIER and self.base_option_id is None and self.category_option_id is None


def _effective(option, tier: str, attribute_id: int, layers: Sequence[Layer], **links) -> EffectiveOption:
    resolution = resolve_layers(layers, OPTION_FIELDS, {"price_adjustment": ZERO})
    return EffectiveOption(
        id=option.id,
        tier=tier,
        attribute_id=attribute_id,
        value=option.value,
        display_value=option.display_value or option.value,
        sort_order=option.sort_order or 0,
        price_adjustment=to_money(resolution["price_adjustment"]),
        metadata=resolution["metadata"],
        price_adjustment_tier=resolution.tier_of("price_adjustment"),
        **links,
    )


def effective_global_option(option: GlobalAttributeOption) -> EffectiveOption:
    return _effective(
        option,
        GLOBAL_TIER,
        option.attribute_id,
        [Layer(GLOBAL_TIER, option, GLOBAL_OPTION_COLUMNS)],
    )


def effective_category_option(option: CategoryAttributeOption, attribute_id: int) -> EffectiveOption:
    return _effective(
        option,
        CATEGORY_TIER,
        attribute_id,
        [
            Layer(CATEGORY_TIER, option, PRICED_COLUMNS),
            Layer(GLOBAL_TIER, option.base_option, GLOBAL_OPTION_COLUMNS),
        ],
        base_option_id=option.base_option_id,
    )


def effective_product_option(option: ProductAttributeOption, attribute_id: int) -> EffectiveOption:
    category_option = option.category_option
    base_option = option.base_option
    if base_option is None and category_option is not None:
        base_option = category_option.base_option
    return _effective(
        option,
        PRODUCT_TIER,
        attribute_id,
        [
            Layer(PRODUCT_TIER, option, PRICED_COLUMNS),
            Layer(CATEGORY_TIER, category_option, PRICED_COLUMNS),
            Layer(GLOBAL_TIER, base_option, GLOBAL_OPTION_COLUMNS),
        ],
        base_option_id=option.base_option_id,
        category_option_id=option.category_option_id,
    )


def _sorted(options: List[EffectiveOption]) -> List[EffectiveOption]:
    return sorted(options, key=lambda o: (o.sort_order, o.value, o.id))


def resolve_options(db: Session, attribute: EffectiveAttribute) -> List[EffectiveOption]:
    """Return the option list that applies to an effective attribute."""
    if attribute.product_attribute_id is not None:
        product_options = (
            db.query(ProductAttributeOption)
            .filter(ProductAttributeOption.product_attribute_id == attribute.product_attribute_id)
            .all()
        )
        if product_options:
            return _sorted([effective_product_option(o, attribute.attribute_id) for o in product_options])

    if attribute.category_attribute_id is not None:
        category_options = (
            db.query(CategoryAttributeOption)
            .filter(CategoryAttributeOption.category_attribute_id == attribute.category_attribute_id)
            .all()
        )
        return _sorted([effective_category_option(o, attribute.attribute_id) for o in category_options])

    global_options = (
        db.query(GlobalAttributeOption)
        .filter(GlobalAttributeOption.attribute_id == attribute.attribute_id)
        .all()
    )
    return _sorted([effective_global_option(o) for o in global_options])


def option_source(db: Session, attribute: EffectiveAttribute) -> str:
    """Name the tier resolve_options would read from."""
    if attribute.product_attribute_id is not None:
        has_product_options = (
            db.query(ProductAttributeOption.id)
            .filter(ProductAttributeOption.product_attribute_id == attribute.product_attribute_id)
            .first()
        )
        if has_product_options:
            return PRODUCT_TIER
    if attribute.category_attribute_id is not None:
        return CATEGORY_TIER
    return GLOBAL_TIER


# -- category option store --------------------------------------------------

def get_category_option(db: Session, option_id: int, category_attribute_id: Optional[int] = None) -> CategoryAttributeOption:
    option = get_or_raise(db, CategoryAttributeOption, option_id, "CategoryAttributeOption")
    if category_attribute_id is not None and option.category_attribute_id != category_attribute_id:
        raise NotFoundError(f"CategoryAttribute {category_attribute_id} option", option_id)
    return option


def create_category_option(db: Session, category_attribute_id: int, data: Mapping[str, Any]) -> CategoryAttributeOption:
    category_attribute = get_or_raise(db, CategoryAttribute, category_attribute_id, "CategoryAttribute")
    option = CategoryAttributeOption(category_attribute_id=category_attribute_id)
    _apply_option_fields(db, option, data, OPTION_EDIT_FIELDS, category_attribute.attribute_id)
    if option.sort_order is None:
        option.sort_order = (
            db.query(CategoryAttributeOption)
            .filter(CategoryAttributeOption.category_attribute_id == category_attribute_id)
            .count()
        )
    db.add(option)
    commit_or_conflict(db, f"Option {option.value!r} already exists for category attribute {category_attribute_id}")
    db.refresh(option)
    logger.info("created category option %s (%r) on %s", option.id, option.value, category_attribute_id)
    return option


def update_category_option(
    db: Session,
    option_id: int,
    changes: Mapping[str, Any],
    category_attribute_id: Optional[int] = None,
) -> CategoryAttributeOption:
    option = get_category_option(db, option_id, category_attribute_id)
    if "value" in changes:
        product_ids = [
            row.product_id
            for row in db.query(ProductAttribute.product_id)
            .filter(ProductAttribute.category_attribute_id == option.category_attribute_id)
        ]
        check_option_rename(
            db, option.category_attribute.attribute_id, option.value, validate_option_value(changes["value"]), product_ids
        )
    _apply_option_fields(db, option, changes, OPTION_EDIT_FIELDS, option.category_attribute.attribute_id)
    commit_or_conflict(db, f"Option {option.value!r} already exists for category attribute {option.category_attribute_id}")
    db.refresh(option)
    logger.info("updated category option %s: %s", option_id, sorted(changes))
    return option


def delete_category_option(db: Session, option_id: int, category_attribute_id: Optional[int] = None) -> None:
    option = get_category_option(db, option_id, category_attribute_id)
    # product options linked to it become custom options
    (
        db.query(ProductAttributeOption)
        .filter(ProductAttributeOption.category_option_id == option_id)
        .update({ProductAttributeOption.category_option_id: None}, synchronize_session="fetch")
    )
    db.delete(option)
    db.commit()
    logger.info("deleted category option %s", option_id)


def reorder_category_options(db: Session, category_attribute_id: int, option_ids: Sequence[int]) -> List[CategoryAttributeOption]:
    get_or_raise(db, CategoryAttribute, category_attribute_id, "CategoryAttribute")
    options = (
        db.query(CategoryAttributeOption)
        .filter(CategoryAttributeOption.category_attribute_id == category_attribute_id)
        .all()
    )
    return _reorder(db, options, option_ids)


# -- product option store ---------------------------------------------------

def get_product_option(db: Session, option_id: int, product_attribute_id: Optional[int] = None) -> ProductAttributeOption:
    option = get_or_raise(db, ProductAttributeOption, option_id, "ProductAttributeOption")
    if product_attribute_id is not None and option.product_attribute_id != product_attribute_id:
        raise NotFoundError(f"ProductAttribute {product_attribute_id} option", option_id)
    return option


def create_product_option(db: Session, product_attribute_id: int, data: Mapping[str, Any]) -> ProductAttributeOption:
    """Add a product-level option.

    The first product option for an attribute replaces the inherited list.
    """
    product_attribute = get_or_raise(db, ProductAttribute, product_attribute_id, "ProductAttribute")
    option = ProductAttributeOption(product_attribute_id=product_attribute_id)
    _apply_option_fields(db, option, data, PRODUCT_OPTION_EDIT_FIELDS, product_attribute.attribute_id, product_attribute)
    if option.sort_order is None:
        option.sort_order = (
            db.query(ProductAttributeOption)
            .filter(ProductAttributeOption.product_attribute_id == product_attribute_id)
            .count()
        )
    db.add(option)
    commit_or_conflict(db, f"Option {option.value!r} already exists for product attribute {product_attribute_id}")
    db.refresh(option)
    logger.info("created product option %s (%r) on %s", option.id, option.value, product_attribute_id)
    return option


def update_product_option(
    db: Session,
    option_id: int,
    changes: Mapping[str, Any],
    product_attribute_id: Optional[int] = None,
) -> ProductAttributeOption:
    option = get_product_option(db, option_id, product_attribute_id)
    product_attribute = option.product_attribute
    if "value" in changes:
        check_option_rename(
            db,
            product_attribute.attribute_id,
            option.value,
            validate_option_value(changes["value"]),
            [product_attribute.product_id],
        )
    _apply_option_fields(db, option, changes, PRODUCT_OPTION_EDIT_FIELDS, product_attribute.attribute_id, product_attribute)
    commit_or_conflict(db, f"Option {option.value!r} already exists for product attribute {option.product_attribute_id}")
    db.refresh(option)
    logger.info("updated product option %s: %s", option_id, sorted(changes))
    return option


def delete_product_option(db: Session, option_id: int, product_attribute_id: Optional[int] = None) -> None:
    option = get_product_option(db, option_id, product_attribute_id)
    db.delete(option)
    db.commit()
    logger.info("deleted product option %s", option_id)


def reorder_product_options(db: Session, product_attribute_id: int, option_ids: Sequence[int]) -> List[ProductAttributeOption]:
    get_or_raise(db, ProductAttribute, product_attribute_id, "ProductAttribute")
    options = (
        db.query(ProductAttributeOption)
        .filter(ProductAttributeOption.product_attribute_id == product_attribute_id)
        .all()
    )
    return _reorder(db, options, option_ids)


# -- helpers ----------------------------------------------------------------

def _reorder(db: Session, options: list, option_ids: Sequence[int]):
    """Assign sort_order 0..n-1 following ``option_ids``, which must list every option once."""
    existing = {option.id: option for option in options}
    requested = list(option_ids)
    unknown = [i for i in requested if i not in existing]
    if unknown:
        raise ValidationError(f"Unknown option ids: {unknown}", {"unknown_ids": unknown})
    missing = sorted(set(existing) - set(requested))
    if missing:
        raise ValidationError(f"Reorder must include every option; missing ids: {missing}", {"missing_ids": missing})
    if len(set(requested)) != len(requested):
        raise ValidationError("Reorder lists an option more than once")
    for position, option_id in enumerate(requested):
        existing[option_id].sort_order = position
    db.commit()
    return [existing[option_id] for option_id in requested]


def _apply_option_fields(
    db: Session,
    option,
    data: Mapping[str, Any],
    allowed: Sequence[str],
    attribute_id: int,
    product_attribute: Optional[ProductAttribute] = None,
) -> None:
    for key in data:
        if key not in allowed:
            raise ValidationError(f"Field {key!r} cannot be set on this option")

    if "value" in data or option.value is None:
        option.value = validate_option_value(data.get("value"))
    if data.get("display_value"):
        option.display_value = data["display_value"].strip()
    elif option.display_value is None or "display_value" in data:
        option.display_value = option.value
    if data.get("sort_order") is not None:
        option.sort_order = data["sort_order"]
    if "price_adjustment" in data:
        adjustment = data["price_adjustment"]
        option.price_adjustment = None if adjustment is None else to_money(adjustment)
    if "metadata" in data:
        option.option_metadata = data["metadata"]

    if "base_option_id" in data:
        option.base_option_id = data["base_option_id"]
    if "category_option_id" in data:
        option.category_option_id = data["category_option_id"]

    if getattr(option, "category_option_id", None) is not None and option.base_option_id is not None:
        raise ValidationError("An option links to a base option or a category option, not both")

    if option.base_option_id is not None:
        base_option = get_or_raise(db, GlobalAttributeOption, option.base_option_id, "AttributeOption")
        if base_option.attribute_id != attribute_id:
            raise ValidationError(f"Base option {base_option.id} belongs to another attribute")

    category_option_id = getattr(option, "category_option_id", None)
    if category_option_id is not None:
        category_option = get_or_raise(db, CategoryAttributeOption, category_option_id, "CategoryAttributeOption")
        if product_attribute is None or category_option.category_attribute_id != product_attribute.category_attribute_id:
            raise ValidationError(
                f"Category option {category_option_id} does not belong to this attribute's category attachment"
            )
