"""
Combination & pricing engine.

Given a product and a selection of attribute values, the engine keeps only the
product's variant attributes, checks that every required one is selected,
builds the canonical combination key and prices the selection:

* an explicit ``ProductAttributeCombination`` for that key wins outright;
* otherwise the resolved option adjustments are summed.

All arithmetic is done on ``Decimal`` and rounded exactly once, at the end.
Nothing is cached; every call recomputes from the stored rows.
"""
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Tuple
from sqlalchemy.orm import Session
from catalog_options.core.exceptions import (
    ConflictError,
    IncompleteSelectionError,
    NotFoundError,
    ValidationError,
)
from catalog_options.models.combination import ProductAttributeCombination
from catalog_options.models.product import Product
from catalog_options.services.attribute_resolver import EffectiveAttribute, resolve_product_attributes
from catalog_options.services.combination_keys import combination_hash
from catalog_options.services.common import commit_or_conflict, get_or_raise
from catalog_options.services.money import ZERO, round_money, to_money
from catalog_options.services.option_resolver import EffectiveOption, resolve_options

logger = logging.getLogger(__name__)


@dataclass
class BreakdownLine:
    attribute_id: int
    option_id: int
    value: str
    adjustment: Decimal


@dataclass
class PriceQuote:
    product_id: int
    base_price: Decimal
    final_price: Decimal
    combination_hash: str
    matched_combination_id: Optional[int] = None
    breakdown: List[BreakdownLine] = field(default_factory=list)

    @property
    def total_adjustment(self) -> Decimal:
        return self.final_price - self.base_price


@dataclass
class PreparedSelection:
    """A validated selection restricted to the product's variant attributes."""
    product: Product
    key: str
    chosen: List[Tuple[EffectiveAttribute, EffectiveOption]]


def normalize_selection(selection: Mapping[Any, Any]) -> Dict[int, str]:
    """Coerce keys to attribute ids and values to strings, dropping blanks."""
    normalized: Dict[int, str] = {}
    for raw_key, raw_value in (selection or {}).items():
        try:
            attribute_id = int(raw_key)
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"Selection key {raw_key!r} is not an attribute id") from exc
        if raw_value is None:
            continue
        value = str(raw_value).strip()
        if value:
            normalized[attribute_id] = value
    return normalized


def prepare_selection(db: Session, product_id: int, selection: Mapping[Any, Any]) -> PreparedSelection:
    """Validate a selection and match it to effective options.

    Keys that are not variant attributes of the product are ignored; a missing
    required variant attribute raises IncompleteSelectionError and a value that
    is not one of the attribute's effective options raises ValidationError.
    """
    product = get_or_raise(db, Product, product_id, "Product")
    normalized = normalize_selection(selection)
    variant_attributes = [a for a in resolve_product_attributes(db, product_id) if a.is_variant]

    missing = [a.attribute_id for a in variant_attributes if a.is_required and a.attribute_id not in normalized]
    if missing:
        raise IncompleteSelectionError(missing)

    chosen: List[Tuple[EffectiveAttribute, EffectiveOption]] = []
    for attribute in variant_attributes:
        selected = normalized.get(attribute.attribute_id)
        if selected is None:
            continue
        option = _match_option(resolve_options(db, attribute), selected)
        if option is None:
            raise ValidationError(
                f"{selected!r} is not an option of {attribute.display_name}",
                {"attribute_id": attribute.attribute_id, "value": selected},
            )
        chosen.append((attribute, option))

    key = combination_hash({attribute.attribute_id: option.value for attribute, option in chosen})
    return PreparedSelection(product=product, key=key, chosen=chosen)


def _match_option(options: List[EffectiveOption], selected: str) -> Optional[EffectiveOption]:
    for option in options:
        if option.value == selected:
            return option
    return None


def find_combination(db: Session, product_id: int, key: str) -> Optional[ProductAttributeCombination]:
    if not key:
        return None
    return (
        db.query(ProductAttributeCombination)
        .filter(
            ProductAttributeCombination.product_id == product_id,
            ProductAttributeCombination.combination_hash == key,
        )
        .first()
    )


def compute_price(
    db: Session,
    product_id: int,
    selection: Mapping[Any, Any],
    base_price: Any = None,
) -> PriceQuote:
    """Price a selection for a product.

    ``base_price`` defaults to the product's stored base price.
    """
    prepared = prepare_selection(db, product_id, selection)
    base = to_money(prepared.product.base_price if base_price is None else base_price)

    breakdown = [
        BreakdownLine(
            attribute_id=attribute.attribute_id,
            option_id=option.id,
            value=option.value,
            adjustment=option.price_adjustment,
        )
        for attribute, option in prepared.chosen
    ]

    combination = find_combination(db, product_id, prepared.key)
    if combination is not None:
        adjustment = to_money(combination.price_adjustment)
    else:
        adjustment = sum((line.adjustment for line in breakdown), ZERO)

    quote = PriceQuote(
        product_id=product_id,
        base_price=base,
        final_price=round_money(base + adjustment),
        combination_hash=prepared.key,
        matched_combination_id=combination.id if combination is not None else None,
        breakdown=breakdown,
    )
    logger.debug(
        "priced product %s selection %r -> %s (combination %s)",
        product_id,
        prepared.key,
        quote.final_price,
        quote.matched_combination_id,
    )
    return quote


# -- combination store ------------------------------------------------------

def list_combinations(db: Session, product_id: int) -> List[ProductAttributeCombination]:
    get_or_raise(db, Product, product_id, "Product")
    return (
        db.query(ProductAttributeCombination)
        .filter(ProductAttributeCombination.product_id == product_id)
        .order_by(ProductAttributeCombination.id)
        .all()
    )


def get_combination(db: Session, product_id: int, combination_id: int) -> ProductAttributeCombination:
    combination = get_or_raise(db, ProductAttributeCombination, combination_id, "Combination")
    if combination.product_id != product_id:
        raise NotFoundError("Combination", combination_id)
    return combination


def create_combination(
    db: Session,
    product_id: int,
    selection: Mapping[Any, Any],
    price_adjustment: Any,
) -> ProductAttributeCombination:
    """Store an explicit price override for one exact variant selection."""
    prepared = prepare_selection(db, product_id, selection)
    if not prepared.key:
        raise ValidationError("A combination needs at least one variant attribute value")
    if find_combination(db, product_id, prepared.key) is not None:
        raise ConflictError(f"Combination {prepared.key!r} already exists for product {product_id}")

    combination = ProductAttributeCombination(
        product_id=product_id,
        combination_hash=prepared.key,
        price_adjustment=to_money(price_adjustment),
        attributes={attribute.display_name: option.display_value for attribute, option in prepared.chosen},
    )
    db.add(combination)
    commit_or_conflict(db, f"Combination {prepared.key!r} already exists for product {product_id}")
    db.refresh(combination)
    logger.info("created combination %s for product %s: %s", combination.id, product_id, prepared.key)
    return combination


def update_combination(db: Session, product_id: int, combination_id: int, price_adjustment: Any) -> ProductAttributeCombination:
    combination = get_combination(db, product_id, combination_id)
    combination.price_adjustment = to_money(price_adjustment)
    db.commit()
    db.refresh(combination)
    logger.info("updated combination %s adjustment to %s", combination_id, combination.price_adjustment)
    return combination


def delete_combination(db: Session, product_id: int, combination_id: int) -> None:
    combination = get_combination(db, product_id, combination_id)
    db.delete(combination)
    db.commit()
    logger.info("deleted combination %s of product %s", combination_id, product_id)
