"""
Admin CRUD for the global tier and the owning category/product records.
"""
import logging
from typing import Any, List, Mapping, Optional
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from catalog_options.core.cache import clear_cache_pattern, get_cache, set_cache
from catalog_options.core.exceptions import ConflictError, InternalError, NotFoundError, ValidationError
from catalog_options.models.attribute import AttributeType, GlobalAttribute, GlobalAttributeOption
from catalog_options.models.attribute_value import ProductAttributeValue
from catalog_options.models.category import Category
from catalog_options.models.product import Product
from catalog_options.models.product_attribute import ProductAttribute
from catalog_options.services.attribute_resolver import (
    cascade_delete_product_attribute,
    discard_category_attribute,
    resolve_delete_policy,
)
from catalog_options.services.attribute_values import SLOT_BY_TYPE
from catalog_options.services.combination_keys import check_option_rename, validate_option_value
from catalog_options.services.common import commit_or_conflict, get_or_raise
from catalog_options.services.money import to_money

logger = logging.getLogger(__name__)

ATTRIBUTE_CACHE_PATTERN = "attributes:*"

ATTRIBUTE_FIELDS = (
    "name",
    "display_name",
    "description",
    "attribute_type",
    "is_filterable",
    "is_swatch",
    "is_required",
    "is_variant",
    "is_comparable",
    "display_in_product_summary",
    "sort_order",
    "validation_rules",
)


# -- global attributes ------------------------------------------------------

def list_attributes(db: Session, skip: int = 0, limit: int = 100) -> List[GlobalAttribute]:
    return (
        db.query(GlobalAttribute)
        .order_by(GlobalAttribute.sort_order, GlobalAttribute.name)
        .offset(skip)
        .limit(limit)
        .all()
    )


def list_attributes_cached(db: Session, serialize, skip: int = 0, limit: int = 100) -> List[Any]:
    """Serialized attribute listing through the read-through cache."""
    cache_key = f"attributes:{skip}:{limit}"
    cached = get_cache(cache_key)
    if cached is not None:
        return cached
    data = [serialize(attribute) for attribute in list_attributes(db, skip, limit)]
    set_cache(cache_key, data)
    return data


def get_attribute(db: Session, attribute_id: int) -> GlobalAttribute:
    return get_or_raise(db, GlobalAttribute, attribute_id, "Attribute")


def create_attribute(db: Session, data: Mapping[str, Any]) -> GlobalAttribute:
    _check_attribute_fields(data)
    if db.query(GlobalAttribute).filter(GlobalAttribute.name == data["name"]).first() is not None:
        raise ConflictError(f"Attribute {data['name']!r} already exists")
    attribute = GlobalAttribute(**{k: v for k, v in data.items() if v is not None})
    db.add(attribute)
    commit_or_conflict(db, f"Attribute {data['name']!r} already exists")
    db.refresh(attribute)
    clear_cache_pattern(ATTRIBUTE_CACHE_PATTERN)
    logger.info("created attribute %s (%s)", attribute.id, attribute.name)
    return attribute


def update_attribute(db: Session, attribute_id: int, changes: Mapping[str, Any]) -> GlobalAttribute:
    attribute = get_attribute(db, attribute_id)
    _check_attribute_fields(changes)
    for key in ("name", "display_name", "attribute_type"):
        if key in changes and changes[key] is None:
            raise ValidationError(f"{key} cannot be cleared")
    new_type = changes.get("attribute_type")
    if new_type is not None and AttributeType(new_type) != AttributeType(attribute.attribute_type):
        if attribute.options and not AttributeType(new_type).is_enumerated:
            raise ValidationError("Remove the attribute's options before making it non-enumerated")
        _check_values_fit_type(db, attribute, AttributeType(new_type))
    for key, value in changes.items():
        setattr(attribute, key, value)
    commit_or_conflict(db, f"Attribute {changes.get('name')!r} already exists")
    db.refresh(attribute)
    clear_cache_pattern(ATTRIBUTE_CACHE_PATTERN)
    logger.info("updated attribute %s: %s", attribute_id, sorted(changes))
    return attribute


def delete_attribute(db: Session, attribute_id: int) -> None:
    """Delete a global attribute and everything attached to it, atomically."""
    attribute = get_attribute(db, attribute_id)
    product_attributes = (
        db.query(ProductAttribute)
        .filter(ProductAttribute.attribute_id == attribute_id)
        .all()
    )
    try:
        for product_attribute in product_attributes:
            cascade_delete_product_attribute(db, product_attribute)
        db.expire(attribute, ["product_attributes"])
        db.delete(attribute)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("deleting attribute %s failed", attribute_id)
        raise InternalError(f"Could not delete attribute {attribute_id}") from exc
    clear_cache_pattern(ATTRIBUTE_CACHE_PATTERN)
    logger.info("deleted attribute %s and %d product attachments", attribute_id, len(product_attributes))


def _check_values_fit_type(db: Session, attribute: GlobalAttribute, new_type: AttributeType) -> None:
    """Assigned values must keep matching the attribute's type after a change."""
    values = db.query(ProductAttributeValue).filter(ProductAttributeValue.attribute_id == attribute.id)
    slot = SLOT_BY_TYPE[new_type]
    mismatched = values.filter(getattr(ProductAttributeValue, slot).is_(None)).count()
    if mismatched:
        raise ConflictError(
            f"{mismatched} assigned value(s) of {attribute.name} do not fit type {new_type.value}; remove them first",
            {"mismatched_values": mismatched},
        )
    if new_type != AttributeType.MULTISELECT:
        crowded = (
            db.query(ProductAttributeValue.product_id)
            .filter(ProductAttributeValue.attribute_id == attribute.id)
            .group_by(ProductAttributeValue.product_id)
            .having(func.count(ProductAttributeValue.id) > 1)
            .count()
        )
        if crowded:
            raise ConflictError(
                f"{crowded} product(s) hold several values for {attribute.name}; {new_type.value} allows one",
                {"products_with_several_values": crowded},
            )


def _check_attribute_fields(data: Mapping[str, Any]) -> None:
    unknown = set(data) - set(ATTRIBUTE_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown attribute fields: {sorted(unknown)}")


# -- global options ---------------------------------------------------------

def list_attribute_options(db: Session, attribute_id: int) -> List[GlobalAttributeOption]:
    get_attribute(db, attribute_id)
    return (
        db.query(GlobalAttributeOption)
        .filter(GlobalAttributeOption.attribute_id == attribute_id)
        .order_by(GlobalAttributeOption.sort_order, GlobalAttributeOption.value)
        .all()
    )


def get_attribute_option(db: Session, attribute_id: int, option_id: int) -> GlobalAttributeOption:
    option = get_or_raise(db, GlobalAttributeOption, option_id, "AttributeOption")
    if option.attribute_id != attribute_id:
        raise NotFoundError(f"Attribute {attribute_id} option", option_id)
    return option


def create_attribute_option(db: Session, attribute_id: int, data: Mapping[str, Any]) -> GlobalAttributeOption:
    attribute = get_attribute(db, attribute_id)
    if not AttributeType(attribute.attribute_type).is_enumerated:
        raise ValidationError(
            f"Attribute {attribute.name} is of type {AttributeType(attribute.attribute_type).value} and has no options"
        )
    value = validate_option_value(data.get("value"))
    sort_order = data.get("sort_order")
    if sort_order is None:
        sort_order = (
            db.query(GlobalAttributeOption)
            .filter(GlobalAttributeOption.attribute_id == attribute_id)
            .count()
        )
    option = GlobalAttributeOption(
        attribute_id=attribute_id,
        value=value,
        display_value=(data.get("display_value") or value).strip(),
        sort_order=sort_order,
        option_metadata=data.get("metadata"),
    )
    db.add(option)
    commit_or_conflict(db, f"Option {value!r} already exists for attribute {attribute_id}")
    db.refresh(option)
    clear_cache_pattern(ATTRIBUTE_CACHE_PATTERN)
    logger.info("created option %s (%r) on attribute %s", option.id, value, attribute_id)
    return option


def update_attribute_option(db: Session, attribute_id: int, option_id: int, changes: Mapping[str, Any]) -> GlobalAttributeOption:
    option = get_attribute_option(db, attribute_id, option_id)
    if "value" in changes:
        value = validate_option_value(changes["value"])
        product_ids = [
            row.product_id
            for row in db.query(ProductAttribute.product_id).filter(ProductAttribute.attribute_id == attribute_id)
        ]
        check_option_rename(db, attribute_id, option.value, value, product_ids)
        option.value = value
    if "display_value" in changes:
        option.display_value = (changes["display_value"] or option.value).strip()
    if changes.get("sort_order") is not None:
        option.sort_order = changes["sort_order"]
    if "metadata" in changes:
        option.option_metadata = changes["metadata"]
    commit_or_conflict(db, f"Option {option.value!r} already exists for attribute {attribute_id}")
    db.refresh(option)
    clear_cache_pattern(ATTRIBUTE_CACHE_PATTERN)
    logger.info("updated option %s: %s", option_id, sorted(changes))
    return option


def delete_attribute_option(db: Session, attribute_id: int, option_id: int) -> None:
    option = get_attribute_option(db, attribute_id, option_id)
    db.delete(option)
    db.commit()
    clear_cache_pattern(ATTRIBUTE_CACHE_PATTERN)
    logger.info("deleted option %s of attribute %s", option_id, attribute_id)


# -- categories and products ------------------------------------------------

def list_categories(db: Session, skip: int = 0, limit: int = 100, parent_id: Optional[int] = None) -> List[Category]:
    query = db.query(Category)
    if parent_id is not None:
        query = query.filter(Category.parent_id == parent_id)
    return query.order_by(Category.id).offset(skip).limit(limit).all()


def create_category(db: Session, data: Mapping[str, Any]) -> Category:
    if data.get("parent_id") is not None:
        get_or_raise(db, Category, data["parent_id"], "Category")
    category = Category(**data)
    db.add(category)
    db.commit()
    db.refresh(category)
    logger.info("created category %s (%s)", category.id, category.name)
    return category


def delete_category(db: Session, category_id: int, policy: Optional[str] = None) -> None:
    """Delete a category; each of its attribute attachments goes through the delete policy."""
    policy = resolve_delete_policy(policy)
    category = get_or_raise(db, Category, category_id, "Category")
    category_attributes = list(category.attributes)
    try:
        dependents = sum(discard_category_attribute(db, ca, policy) for ca in category_attributes)
        db.flush()
        db.expire(category, ["attributes"])
        db.delete(category)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("deleting category %s failed", category_id)
        raise InternalError(f"Could not delete category {category_id}") from exc
    logger.info(
        "deleted category %s (%s, %d attachments, %d dependent product attributes)",
        category_id,
        policy,
        len(category_attributes),
        dependents,
    )


def list_products(db: Session, skip: int = 0, limit: int = 100, category_id: Optional[int] = None) -> List[Product]:
    query = db.query(Product)
    if category_id is not None:
        query = query.filter(Product.category_id == category_id)
    return query.order_by(Product.id).offset(skip).limit(limit).all()


def create_product(db: Session, data: Mapping[str, Any]) -> Product:
    values = dict(data)
    if values.get("category_id") is not None:
        get_or_raise(db, Category, values["category_id"], "Category")
    values["base_price"] = to_money(values.get("base_price"))
    product = Product(**values)
    db.add(product)
    db.commit()
    db.refresh(product)
    logger.info("created product %s (%s)", product.id, product.name)
    return product


def update_product(db: Session, product_id: int, changes: Mapping[str, Any]) -> Product:
    product = get_or_raise(db, Product, product_id, "Product")
    if "category_id" in changes and changes["category_id"] != product.category_id:
        if changes["category_id"] is not None:
            get_or_raise(db, Category, changes["category_id"], "Category")
        linked = (
            db.query(ProductAttribute)
            .filter(ProductAttribute.product_id == product_id, ProductAttribute.category_attribute_id.isnot(None))
            .count()
        )
        if linked:
            raise ConflictError("Detach category-sourced attributes before moving the product to another category")
    for key, value in changes.items():
        if key == "base_price":
            if value is None:
                raise ValidationError("base_price cannot be cleared")
            value = to_money(value)
        setattr(product, key, value)
    db.commit()
    db.refresh(product)
    logger.info("updated product %s: %s", product_id, sorted(changes))
    return product


def delete_product(db: Session, product_id: int) -> None:
    product = get_or_raise(db, Product, product_id, "Product")
    db.delete(product)
    db.commit()
    logger.info("deleted product %s", product_id)
