"""
Attribute resolution across the global, category and product tiers.

A product attribute row may override display name, description, requiredness
and sort order.  Anything it leaves unset is taken from the category
attachment it was created from (if any) and finally from the global
attribute, which always defines a display name.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from catalog_options.core.config import settings
from catalog_options.core.exceptions import ConflictError, InternalError, NotFoundError, ValidationError
from catalog_options.models.attribute import AttributeType, GlobalAttribute
from catalog_options.models.category import Category
from catalog_options.models.category_attribute import CategoryAttribute, CategoryAttributeOption
from catalog_options.models.product import Product
from catalog_options.models.product_attribute import ProductAttribute, ProductAttributeOption
from catalog_options.services import combination_keys
from catalog_options.services.common import commit_or_conflict, get_or_raise
from catalog_options.services.layered import (
    CATEGORY_TIER,
    GLOBAL_TIER,
    PRODUCT_TIER,
    Layer,
    resolve_layers,
)

logger = logging.getLogger(__name__)

RESOLVED_FIELDS = ("display_name", "description", "is_required", "is_filterable", "sort_order")

PRODUCT_COLUMNS = {
    "display_name": "override_display_name",
    "description": "override_description",
    "is_required": "is_required",
    "sort_order": "sort_order",
}
CATEGORY_COLUMNS = dict(PRODUCT_COLUMNS, is_filterable="is_filterable")
GLOBAL_COLUMNS = {
    "display_name": "display_name",
    "description": "description",
    "is_required": "is_required",
    "is_filterable": "is_filterable",
    "sort_order": "sort_order",
}
DEFAULTS = {"is_required": False, "is_filterable": False, "sort_order": 0}

PRODUCT_OVERRIDE_FIELDS = ("override_display_name", "override_description", "is_required", "sort_order")
CATEGORY_OVERRIDE_FIELDS = PRODUCT_OVERRIDE_FIELDS + ("is_filterable",)


@dataclass
class EffectiveAttribute:
    attribute_id: int
    name: str
    attribute_type: AttributeType
    display_name: str
    description: Optional[str]
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
    sources: Dict[str, Optional[str]] = field(default_factory=dict)

    @property
    def is_category_sourced(self) -> bool:
        return self.category_attribute_id is not None


def attribute_layers(
    attribute: GlobalAttribute,
    category_attribute: Optional[CategoryAttribute] = None,
    product_attribute: Optional[ProductAttribute] = None,
) -> List[Layer]:
    return [
        Layer(PRODUCT_TIER, product_attribute, PRODUCT_COLUMNS),
        Layer(CATEGORY_TIER, category_attribute, CATEGORY_COLUMNS),
        Layer(GLOBAL_TIER, attribute, GLOBAL_COLUMNS),
    ]


def build_effective_attribute(
    attribute: GlobalAttribute,
    category_attribute: Optional[CategoryAttribute] = None,
    product_attribute: Optional[ProductAttribute] = None,
) -> EffectiveAttribute:
    resolution = resolve_layers(
        attribute_layers(attribute, category_attribute, product_attribute),
        RESOLVED_FIELDS,
        DEFAULTS,
    )
    return EffectiveAttribute(
        attribute_id=attribute.id,
        name=attribute.name,
        attribute_type=attribute.attribute_type,
        display_name=resolution["display_name"],
        description=resolution["description"],
        is_required=bool(resolution["is_required"]),
        is_filterable=bool(resolution["is_filterable"]),
        is_variant=bool(attribute.is_variant),
        is_swatch=bool(attribute.is_swatch),
        is_comparable=bool(attribute.is_comparable),
        display_in_product_summary=bool(attribute.display_in_product_summary),
        sort_order=int(resolution["sort_order"]),
        validation_rules=attribute.validation_rules,
        product_id=product_attribute.product_id if product_attribute else None,
        product_attribute_id=product_attribute.id if product_attribute else None,
        category_id=category_attribute.category_id if category_attribute else None,
        category_attribute_id=category_attribute.id if category_attribute else None,
        sources={name: resolution.tier_of(name) for name in RESOLVED_FIELDS},
    )


def _ordered(attributes: List[EffectiveAttribute]) -> List[EffectiveAttribute]:
    return sorted(
        attributes,
        key=lambda a: (a.sort_order, a.display_name.casefold(), a.product_attribute_id or 0, a.attribute_id),
    )


# -- product tier -----------------------------------------------------------

def resolve_product_attribute(product_attribute: ProductAttribute) -> EffectiveAttribute:
    return build_effective_attribute(
        product_attribute.attribute,
        product_attribute.category_attribute,
        product_attribute,
    )


def resolve_product_attributes(db: Session, product_id: int) -> List[EffectiveAttribute]:
    """Return the product's effective, ordered attribute list."""
    get_or_raise(db, Product, product_id, "Product")
    rows = (
        db.query(ProductAttribute)
        .filter(ProductAttribute.product_id == product_id)
        .all()
    )
    resolved = _ordered([resolve_product_attribute(row) for row in rows])
    logger.debug("resolved %d attributes for product %s", len(resolved), product_id)
    return resolved


def get_product_attribute(db: Session, product_attribute_id: int, product_id: Optional[int] = None) -> ProductAttribute:
    product_attribute = get_or_raise(db, ProductAttribute, product_attribute_id, "ProductAttribute")
    if product_id is not None and product_attribute.product_id != product_id:
        raise _not_attached(product_attribute_id, "Product", product_id)
    return product_attribute


def find_product_attribute(db: Session, product_id: int, attribute_id: int) -> Optional[ProductAttribute]:
    return (
        db.query(ProductAttribute)
        .filter(ProductAttribute.product_id == product_id, ProductAttribute.attribute_id == attribute_id)
        .first()
    )


def _not_attached(object_id: int, owner: str, owner_id: int) -> NotFoundError:
    return NotFoundError(f"{owner} {owner_id} attribute", object_id)


def add_attribute_to_product(
    db: Session,
    product_id: int,
    attribute_id: int,
    category_attribute_id: Optional[int] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> ProductAttribute:
    """Attach a global (or category-sourced) attribute to a product."""
    product = get_or_raise(db, Product, product_id, "Product")
    get_or_raise(db, GlobalAttribute, attribute_id, "Attribute")

    if category_attribute_id is not None:
        category_attribute = get_or_raise(db, CategoryAttribute, category_attribute_id, "CategoryAttribute")
        if category_attribute.attribute_id != attribute_id:
            raise ValidationError(
                f"Category attribute {category_attribute_id} is not attribute {attribute_id}"
            )
        if category_attribute.category_id != product.category_id:
            raise ValidationError(
                f"Category attribute {category_attribute_id} does not belong to the product's category"
            )

    if find_product_attribute(db, product_id, attribute_id) is not None:
        raise ConflictError(f"Attribute {attribute_id} is already attached to product {product_id}")

    product_attribute = ProductAttribute(
        product_id=product_id,
        attribute_id=attribute_id,
        category_attribute_id=category_attribute_id,
    )
    _apply_overrides(product_attribute, overrides or {}, PRODUCT_OVERRIDE_FIELDS)
    db.add(product_attribute)
    commit_or_conflict(db, f"Attribute {attribute_id} is already attached to product {product_id}")
    db.refresh(product_attribute)
    logger.info("attached attribute %s to product %s as %s", attribute_id, product_id, product_attribute.id)
    return product_attribute


def update_product_attribute(
    db: Session,
    product_attribute_id: int,
    changes: Mapping[str, Any],
    product_id: Optional[int] = None,
) -> ProductAttribute:
    """Set or clear overrides; ``None`` clears a field back to the next tier."""
    product_attribute = get_product_attribute(db, product_attribute_id, product_id)
    _apply_overrides(product_attribute, changes, PRODUCT_OVERRIDE_FIELDS)
    commit_or_conflict(db, f"Could not update product attribute {product_attribute_id}")
    db.refresh(product_attribute)
    logger.info("updated product attribute %s: %s", product_attribute_id, sorted(changes))
    return product_attribute


def remove_attribute_from_product(db: Session, product_attribute_id: int, product_id: Optional[int] = None) -> None:
    """Delete a product attribute with its options and referencing combinations, atomically."""
    product_attribute = get_product_attribute(db, product_attribute_id, product_id)
    try:
        removed = cascade_delete_product_attribute(db, product_attribute)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("cascade delete of product attribute %s failed", product_attribute_id)
        raise InternalError(f"Could not delete product attribute {product_attribute_id}") from exc
    logger.info(
        "removed product attribute %s and %d combinations",
        product_attribute_id,
        removed,
    )


def cascade_delete_product_attribute(db: Session, product_attribute: ProductAttribute) -> int:
    """Queue the cascade for one product attribute; the caller commits."""
    removed = combination_keys.delete_referencing_combinations(
        db, product_attribute.product_id, product_attribute.attribute_id
    )
    db.delete(product_attribute)
    db.flush()
    return removed


# -- category tier ----------------------------------------------------------

def resolve_category_attribute(category_attribute: CategoryAttribute) -> EffectiveAttribute:
    return build_effective_attribute(category_attribute.attribute, category_attribute)


def list_category_attributes(db: Session, category_id: int) -> List[EffectiveAttribute]:
    get_or_raise(db, Category, category_id, "Category")
    rows = (
        db.query(CategoryAttribute)
        .filter(CategoryAttribute.category_id == category_id)
        .all()
    )
    return _ordered([resolve_category_attribute(row) for row in rows])


def get_category_attribute(db: Session, category_attribute_id: int, category_id: Optional[int] = None) -> CategoryAttribute:
    category_attribute = get_or_raise(db, CategoryAttribute, category_attribute_id, "CategoryAttribute")
    if category_id is not None and category_attribute.category_id != category_id:
        raise _not_attached(category_attribute_id, "Category", category_id)
    return category_attribute


def attach_attribute_to_category(
    db: Session,
    category_id: int,
    attribute_id: int,
    overrides: Optional[Mapping[str, Any]] = None,
) -> CategoryAttribute:
    get_or_raise(db, Category, category_id, "Category")
    get_or_raise(db, GlobalAttribute, attribute_id, "Attribute")
    existing = (
        db.query(CategoryAttribute)
        .filter(CategoryAttribute.category_id == category_id, CategoryAttribute.attribute_id == attribute_id)
        .first()
    )
    if existing is not None:
        raise ConflictError(f"Attribute {attribute_id} is already attached to category {category_id}")

    category_attribute = CategoryAttribute(category_id=category_id, attribute_id=attribute_id)
    _apply_overrides(category_attribute, overrides or {}, CATEGORY_OVERRIDE_FIELDS)
    db.add(category_attribute)
    commit_or_conflict(db, f"Attribute {attribute_id} is already attached to category {category_id}")
    db.refresh(category_attribute)
    logger.info("attached attribute %s to category %s as %s", attribute_id, category_id, category_attribute.id)
    return category_attribute


def update_category_attribute(
    db: Session,
    category_attribute_id: int,
    changes: Mapping[str, Any],
    category_id: Optional[int] = None,
) -> CategoryAttribute:
    category_attribute = get_category_attribute(db, category_attribute_id, category_id)
    _apply_overrides(category_attribute, changes, CATEGORY_OVERRIDE_FIELDS)
    commit_or_conflict(db, f"Could not update category attribute {category_attribute_id}")
    db.refresh(category_attribute)
    logger.info("updated category attribute %s: %s", category_attribute_id, sorted(changes))
    return category_attribute


def remove_attribute_from_category(
    db: Session,
    category_attribute_id: int,
    category_id: Optional[int] = None,
    policy: Optional[str] = None,
) -> None:
    """Delete a category attachment, handling dependent product rows by policy.

    ``detach`` keeps dependent product attributes and falls them back to the
    global tier; ``cascade`` removes them like ``remove_attribute_from_product``.
    """
    policy = resolve_delete_policy(policy)
    category_attribute = get_category_attribute(db, category_attribute_id, category_id)
    try:
        dependents = discard_category_attribute(db, category_attribute, policy)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("deleting category attribute %s failed", category_attribute_id)
        raise InternalError(f"Could not delete category attribute {category_attribute_id}") from exc
    logger.info(
        "removed category attribute %s (%s, %d dependent product attributes)",
        category_attribute_id,
        policy,
        dependents,
    )


def resolve_delete_policy(policy: Optional[str] = None) -> str:
    policy = (policy or settings.CATEGORY_ATTRIBUTE_DELETE_POLICY).lower()
    if policy not in ("detach", "cascade"):
        raise ValidationError(f"Unknown category attribute delete policy {policy!r}")
    return policy


def discard_category_attribute(db: Session, category_attribute: CategoryAttribute, policy: str) -> int:
    """Queue the deletion of a category attachment under ``policy``; the caller commits.

    Returns the number of dependent product attributes.
    """
    dependents = (
        db.query(ProductAttribute)
        .filter(ProductAttribute.category_attribute_id == category_attribute.id)
        .all()
    )
    if policy == "cascade":
        for product_attribute in dependents:
            cascade_delete_product_attribute(db, product_attribute)
        db.expire(category_attribute, ["product_attributes"])
    else:
        for product_attribute in dependents:
            product_attribute.category_attribute_id = None
        option_ids = [
            row.id
            for row in db.query(CategoryAttributeOption.id)
            .filter(CategoryAttributeOption.category_attribute_id == category_attribute.id)
        ]
        if option_ids:
            (
                db.query(ProductAttributeOption)
                .filter(ProductAttributeOption.category_option_id.in_(option_ids))
                .update({ProductAttributeOption.category_option_id: None}, synchronize_session="fetch")
            )
    db.delete(category_attribute)
    return len(dependents)


def _apply_overrides(target, changes: Mapping[str, Any], allowed) -> None:
    for key, value in changes.items():
        if key not in allowed:
            raise ValidationError(f"Field {key!r} cannot be overridden here")
        if isinstance(value, str):
            value = value.strip() or None
        setattr(target, key, value)
