"""
Assigned attribute values (filtering and display, not variant selection).

Each value row fills exactly one slot, chosen by the attribute's type.  Values
never take part in combination keys or pricing.
"""
import logging
import re
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Mapping, Optional
from sqlalchemy.orm import Session
from catalog_options.core.exceptions import ConflictError, NotFoundError, TypeMismatchError, ValidationError
from catalog_options.models.attribute import AttributeType, GlobalAttribute, GlobalAttributeOption
from catalog_options.models.attribute_value import ProductAttributeValue, VALUE_SLOTS
from catalog_options.models.category import Category
from catalog_options.models.category_attribute import CategoryAttribute
from catalog_options.models.product import Product
from catalog_options.services.attribute_resolver import build_effective_attribute
from catalog_options.services.common import get_or_raise
from catalog_options.services.money import to_money

logger = logging.getLogger(__name__)

SLOT_BY_TYPE = {
    AttributeType.SELECT: "option_id",
    AttributeType.MULTISELECT: "option_id",
    AttributeType.COLOR: "option_id",
    AttributeType.SIZE: "option_id",
    AttributeType.TEXT: "text_value",
    AttributeType.NUMBER: "number_value",
    AttributeType.DATE: "date_value",
    AttributeType.BOOLEAN: "boolean_value",
}


def expected_slot(attribute: GlobalAttribute) -> str:
    return SLOT_BY_TYPE[AttributeType(attribute.attribute_type)]


def _populated(slots: Mapping[str, Any]) -> List[str]:
    return [slot for slot in VALUE_SLOTS if slots.get(slot) is not None]


def check_slots(db: Session, attribute: GlobalAttribute, slots: Mapping[str, Any]) -> str:
    """Validate that exactly the right slot is filled; return its name."""
    populated = _populated(slots)
    if len(populated) != 1:
        raise ValidationError(
            f"Exactly one value slot must be set, got {len(populated)}",
            {"populated": populated},
        )
    slot = populated[0]
    expected = expected_slot(attribute)
    if slot != expected:
        raise TypeMismatchError(
            f"Attribute {attribute.name} is of type {AttributeType(attribute.attribute_type).value} "
            f"and takes {expected}, not {slot}",
            {"expected": expected, "given": slot},
        )

    value = slots[slot]
    if slot == "option_id":
        option = db.get(GlobalAttributeOption, value)
        if option is None:
            raise NotFoundError("AttributeOption", value)
        if option.attribute_id != attribute.id:
            raise ValidationError(f"Option {value} does not belong to attribute {attribute.name}")
    elif slot == "number_value":
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise TypeMismatchError(f"number_value must be numeric, got {type(value).__name__}")
    elif slot == "text_value":
        if not isinstance(value, str):
            raise TypeMismatchError(f"text_value must be a string, got {type(value).__name__}")
    elif slot == "boolean_value":
        if not isinstance(value, bool):
            raise TypeMismatchError(f"boolean_value must be a boolean, got {type(value).__name__}")
    elif slot == "date_value":
        if not isinstance(value, (date, datetime)):
            raise TypeMismatchError(f"date_value must be a date, got {type(value).__name__}")

    _check_rules(attribute, slot, value)
    return slot


def _check_rules(attribute: GlobalAttribute, slot: str, value: Any) -> None:
    rules = attribute.validation_rules or {}
    if not rules:
        return
    if slot == "number_value":
        if "min" in rules and value < rules["min"]:
            raise ValidationError(f"{attribute.name} must be at least {rules['min']}")
        if "max" in rules and value > rules["max"]:
            raise ValidationError(f"{attribute.name} must be at most {rules['max']}")
    elif slot == "text_value":
        if "min_length" in rules and len(value) < rules["min_length"]:
            raise ValidationError(f"{attribute.name} must be at least {rules['min_length']} characters")
        if "max_length" in rules and len(value) > rules["max_length"]:
            raise ValidationError(f"{attribute.name} must be at most {rules['max_length']} characters")
        if "pattern" in rules and not re.fullmatch(rules["pattern"], value):
            raise ValidationError(f"{attribute.name} does not match the required pattern")


def _coerce_date(value):
    if isinstance(value, date) and not isinstance(value, datetime):
        return datetime(value.year, value.month, value.day)
    return value


# -- CRUD -------------------------------------------------------------------

def list_values(db: Session, product_id: int) -> List[ProductAttributeValue]:
    get_or_raise(db, Product, product_id, "Product")
    return (
        db.query(ProductAttributeValue)
        .filter(ProductAttributeValue.product_id == product_id)
        .order_by(ProductAttributeValue.sort_order, ProductAttributeValue.id)
        .all()
    )


def get_value(db: Session, value_id: int, product_id: Optional[int] = None) -> ProductAttributeValue:
    row = get_or_raise(db, ProductAttributeValue, value_id, "ProductAttributeValue")
    if product_id is not None and row.product_id != product_id:
        raise NotFoundError("ProductAttributeValue", value_id)
    return row


def create_value(db: Session, product_id: int, data: Mapping[str, Any]) -> ProductAttributeValue:
    get_or_raise(db, Product, product_id, "Product")
    attribute_id = data.get("attribute_id")
    attribute = get_or_raise(db, GlobalAttribute, attribute_id, "Attribute")
    slots = {slot: data.get(slot) for slot in VALUE_SLOTS}
    slot = check_slots(db, attribute, slots)
    _check_unique(db, product_id, attribute, slot, slots[slot])

    row = ProductAttributeValue(
        product_id=product_id,
        attribute_id=attribute.id,
        price_adjustment=None if data.get("price_adjustment") is None else to_money(data["price_adjustment"]),
        sort_order=data.get("sort_order") or 0,
    )
    setattr(row, slot, _coerce_date(slots[slot]))
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info("set %s=%r on product %s (value %s)", attribute.name, slots[slot], product_id, row.id)
    return row


def update_value(
    db: Session,
    value_id: int,
    changes: Mapping[str, Any],
    product_id: Optional[int] = None,
) -> ProductAttributeValue:
    """Update a value; sending any slot replaces the stored slot entirely."""
    row = get_value(db, value_id, product_id)
    if "attribute_id" in changes and changes["attribute_id"] != row.attribute_id:
        raise ValidationError("A value cannot be moved to another attribute")

    if any(slot in changes for slot in VALUE_SLOTS):
        slots = {slot: changes.get(slot) for slot in VALUE_SLOTS}
        slot = check_slots(db, row.attribute, slots)
        _check_unique(db, row.product_id, row.attribute, slot, slots[slot], exclude_id=row.id)
        for name in VALUE_SLOTS:
            setattr(row, name, None)
        setattr(row, slot, _coerce_date(slots[slot]))
    if "price_adjustment" in changes:
        adjustment = changes["price_adjustment"]
        row.price_adjustment = None if adjustment is None else to_money(adjustment)
    if changes.get("sort_order") is not None:
        row.sort_order = changes["sort_order"]

    db.commit()
    db.refresh(row)
    logger.info("updated attribute value %s: %s", value_id, sorted(changes))
    return row


def delete_value(db: Session, value_id: int, product_id: Optional[int] = None) -> None:
    row = get_value(db, value_id, product_id)
    db.delete(row)
    db.commit()
    logger.info("deleted attribute value %s", value_id)


def _check_unique(db: Session, product_id: int, attribute: GlobalAttribute, slot: str, value: Any, exclude_id=None) -> None:
    query = db.query(ProductAttributeValue).filter(
        ProductAttributeValue.product_id == product_id,
        ProductAttributeValue.attribute_id == attribute.id,
    )
    if exclude_id is not None:
        query = query.filter(ProductAttributeValue.id != exclude_id)
    if AttributeType(attribute.attribute_type) == AttributeType.MULTISELECT:
        if query.filter(ProductAttributeValue.option_id == value).first() is not None:
            raise ConflictError(f"Option {value} is already assigned to {attribute.name}")
    elif query.first() is not None:
        raise ConflictError(f"Product {product_id} already has a value for {attribute.name}")


# -- aggregation ------------------------------------------------------------

@dataclass
class AggregatedValue:
    value: Any
    display_value: str
    option_id: Optional[int] = None
    product_count: int = 0
    sort_key: tuple = field(default=(), repr=False)


@dataclass
class AggregatedAttribute:
    attribute_id: int
    name: str
    display_name: str
    attribute_type: AttributeType
    is_filterable: bool
    sort_order: int
    values: List[AggregatedValue] = field(default_factory=list)


def aggregate_category_values(db: Session, category_id: int, filterable_only: bool = True) -> List[AggregatedAttribute]:
    """Distinct assigned values per attribute across the products of a category."""
    get_or_raise(db, Category, category_id, "Category")
    rows = (
        db.query(ProductAttributeValue)
        .join(Product, Product.id == ProductAttributeValue.product_id)
        .filter(Product.category_id == category_id)
        .all()
    )
    category_attributes = {
        ca.attribute_id: ca
        for ca in db.query(CategoryAttribute).filter(CategoryAttribute.category_id == category_id)
    }

    grouped: "OrderedDict[int, AggregatedAttribute]" = OrderedDict()
    products_by_value: Dict[tuple, set] = {}
    values_by_key: Dict[tuple, AggregatedValue] = {}
    for row in rows:
        attribute = row.attribute
        if attribute.id not in grouped:
            effective = build_effective_attribute(attribute, category_attributes.get(attribute.id))
            grouped[attribute.id] = AggregatedAttribute(
                attribute_id=attribute.id,
                name=attribute.name,
                display_name=effective.display_name,
                attribute_type=AttributeType(attribute.attribute_type),
                is_filterable=effective.is_filterable,
                sort_order=effective.sort_order,
            )
        key, aggregated = _aggregate_key(row)
        full_key = (attribute.id,) + key
        if full_key not in values_by_key:
            values_by_key[full_key] = aggregated
            grouped[attribute.id].values.append(aggregated)
        products_by_value.setdefault(full_key, set()).add(row.product_id)

    for full_key, aggregated in values_by_key.items():
        aggregated.product_count = len(products_by_value[full_key])

    result = [a for a in grouped.values() if a.is_filterable or not filterable_only]
    for aggregated_attribute in result:
        aggregated_attribute.values.sort(key=lambda v: v.sort_key)
    result.sort(key=lambda a: (a.sort_order, a.display_name.casefold(), a.attribute_id))
    logger.debug("aggregated %d attributes for category %s", len(result), category_id)
    return result


def _aggregate_key(row: ProductAttributeValue):
    if row.option_id is not None:
        option = row.option
        return (
            ("option", option.id),
            AggregatedValue(
                value=option.value,
                display_value=option.display_value,
                option_id=option.id,
                sort_key=(0, option.sort_order or 0, option.value),
            ),
        )
    value = row.value
    if isinstance(value, datetime):
        display = value.date().isoformat() if value.time() == datetime.min.time() else value.isoformat()
    elif isinstance(value, bool):
        display = "Yes" if value else "No"
    else:
        display = str(value)
    return (
        ("scalar", display),
        AggregatedValue(value=value, display_value=display, sort_key=(1, type(value).__name__, value)),
    )
