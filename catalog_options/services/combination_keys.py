"""
Canonical combination keys.

A combination key is built from ``attribute_id:value`` pairs sorted
lexicographically by the attribute id string and joined with ``|``.  Equal
selections produce equal keys regardless of the order they were made in.
"""
from typing import Dict, Iterable, List, Mapping, Optional, Set
from sqlalchemy.orm import Session
from catalog_options.core.exceptions import ConflictError, ValidationError
from catalog_options.models.combination import ProductAttributeCombination

PAIR_SEPARATOR = "|"
KEY_SEPARATOR = ":"


def validate_option_value(value: str) -> str:
    """Option values take part in combination keys, so they must be key-safe."""
    if value is None or not str(value).strip():
        raise ValidationError("Option value must not be empty")
    value = str(value).strip()
    if PAIR_SEPARATOR in value:
        raise ValidationError(f"Option value {value!r} must not contain {PAIR_SEPARATOR!r}")
    return value


def combination_hash(selection: Mapping[int, str]) -> str:
    pairs = sorted((str(attribute_id), str(value)) for attribute_id, value in selection.items())
    return PAIR_SEPARATOR.join(f"{attribute_id}{KEY_SEPARATOR}{value}" for attribute_id, value in pairs)


def parse_combination_hash(key: str) -> Dict[int, str]:
    """Inverse of combination_hash; attribute ids never contain the key separator."""
    selection: Dict[int, str] = {}
    if not key:
        return selection
    for pair in key.split(PAIR_SEPARATOR):
        attribute_id, _, value = pair.partition(KEY_SEPARATOR)
        selection[int(attribute_id)] = value
    return selection


def hash_attribute_ids(key: str) -> Set[int]:
    return set(parse_combination_hash(key))


def find_referencing_combinations(db: Session, product_id: int, attribute_id: int) -> List[ProductAttributeCombination]:
    combinations = (
        db.query(ProductAttributeCombination)
        .filter(ProductAttributeCombination.product_id == product_id)
        .all()
    )
    return [c for c in combinations if attribute_id in hash_attribute_ids(c.combination_hash)]


def delete_referencing_combinations(db: Session, product_id: int, attribute_id: int) -> int:
    """Delete every combination of the product whose key mentions the attribute.

    Does not commit; the caller owns the transaction.
    """
    doomed = find_referencing_combinations(db, product_id, attribute_id)
    for combination in doomed:
        db.delete(combination)
    return len(doomed)


def combinations_selecting(
    db: Session,
    attribute_id: int,
    value: str,
    product_ids: Optional[Iterable[int]] = None,
) -> List[ProductAttributeCombination]:
    """Combinations whose key selects ``value`` for the attribute."""
    query = db.query(ProductAttributeCombination)
    if product_ids is not None:
        query = query.filter(ProductAttributeCombination.product_id.in_(list(product_ids)))
    return [
        c for c in query.all()
        if parse_combination_hash(c.combination_hash).get(attribute_id) == value
    ]


def check_option_rename(
    db: Session,
    attribute_id: int,
    old_value: Optional[str],
    new_value: str,
    product_ids: Optional[Iterable[int]] = None,
) -> None:
    """Refuse renaming an option value that stored combination keys still use."""
    if old_value is None or old_value == new_value:
        return
    referencing = combinations_selecting(db, attribute_id, old_value, product_ids)
    if referencing:
        raise ConflictError(
            f"Option {old_value!r} is used by {len(referencing)} combination(s); delete them before renaming",
            {"combination_ids": [c.id for c in referencing]},
        )
