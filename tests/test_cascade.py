from decimal import Decimal

import pytest
from sqlalchemy.exc import SQLAlchemyError

from catalog_options.core.exceptions import InternalError
from catalog_options.models.combination import ProductAttributeCombination
from catalog_options.models.product_attribute import ProductAttribute, ProductAttributeOption
from catalog_options.services import attribute_resolver, catalog, combination_keys, option_resolver, pricing


def counts(db, product_id):
    return (
        db.query(ProductAttribute).filter(ProductAttribute.product_id == product_id).count(),
        db.query(ProductAttributeOption).count(),
        db.query(ProductAttributeCombination).filter(ProductAttributeCombination.product_id == product_id).count(),
    )


def test_removing_product_attribute_cascades(db, shirt):
    pricing.create_combination(db, shirt.product.id, {shirt.color.id: "Blue", shirt.size.id: "L"}, Decimal("30"))
    pricing.create_combination(db, shirt.product.id, {shirt.color.id: "Red"}, Decimal("1"))

    attribute_resolver.remove_attribute_from_product(db, shirt.size_pa.id, shirt.product.id)

    remaining = attribute_resolver.resolve_product_attributes(db, shirt.product.id)
    assert [a.attribute_id for a in remaining] == [shirt.color.id]
    # only the combination mentioning the size attribute is gone
    [combination] = pricing.list_combinations(db, shirt.product.id)
    assert combination.combination_hash == f"{shirt.color.id}:Red"
    assert db.query(ProductAttributeOption).filter(
        ProductAttributeOption.product_attribute_id == shirt.size_pa.id
    ).count() == 0


def test_failed_cascade_rolls_back_everything(db, shirt, monkeypatch):
    pricing.create_combination(db, shirt.product.id, {shirt.color.id: "Blue", shirt.size.id: "L"}, Decimal("30"))
    before = counts(db, shirt.product.id)
    original = combination_keys.delete_referencing_combinations

    def failing(session, product_id, attribute_id):
        original(session, product_id, attribute_id)
        session.flush()
        raise SQLAlchemyError("disk full")

    monkeypatch.setattr(combination_keys, "delete_referencing_combinations", failing)
    with pytest.raises(InternalError):
        attribute_resolver.remove_attribute_from_product(db, shirt.size_pa.id, shirt.product.id)

    assert counts(db, shirt.product.id) == before
    assert len(attribute_resolver.resolve_product_attributes(db, shirt.product.id)) == 2


def category_sourced(db, make_attribute, make_product):
    category = catalog.create_category(db, {"name": "Apparel"})
    color = make_attribute("color", ["Red"], is_variant=True)
    category_attribute = attribute_resolver.attach_attribute_to_category(
        db, category.id, color.id, {"override_display_name": "Colour"}
    )
    category_red = option_resolver.create_category_option(
        db, category_attribute.id, {"value": "Red", "price_adjustment": "5.00"}
    )
    product = make_product(category_id=category.id)
    product_attribute = attribute_resolver.add_attribute_to_product(db, product.id, color.id, category_attribute.id)
    option_resolver.create_product_option(db, product_attribute.id, {"value": "Red", "category_option_id": category_red.id})
    pricing.create_combination(db, product.id, {color.id: "Red"}, Decimal("2"))
    return product, color, category_attribute


def test_detach_policy_keeps_product_rows(db, make_attribute, make_product):
    product, color, category_attribute = category_sourced(db, make_attribute, make_product)

    attribute_resolver.remove_attribute_from_category(db, category_attribute.id, policy="detach")

    [resolved] = attribute_resolver.resolve_product_attributes(db, product.id)
    assert resolved.display_name == "Color"
    assert not resolved.is_category_sourced
    [option] = option_resolver.resolve_options(db, resolved)
    assert option.is_custom
    assert option.price_adjustment == Decimal("0")
    assert len(pricing.list_combinations(db, product.id)) == 1


def test_cascade_policy_removes_product_rows(db, make_attribute, make_product):
    product, color, category_attribute = category_sourced(db, make_attribute, make_product)

    attribute_resolver.remove_attribute_from_category(db, category_attribute.id, policy="cascade")

    assert attribute_resolver.resolve_product_attributes(db, product.id) == []
    assert pricing.list_combinations(db, product.id) == []
    assert attribute_resolver.list_category_attributes(db, product.category_id) == []


def test_default_policy_comes_from_settings(db, make_attribute, make_product, monkeypatch):
    from catalog_options.core.config import settings

    monkeypatch.setattr(settings, "CATEGORY_ATTRIBUTE_DELETE_POLICY", "cascade")
    product, color, category_attribute = category_sourced(db, make_attribute, make_product)

    attribute_resolver.remove_attribute_from_category(db, category_attribute.id)
    assert attribute_resolver.resolve_product_attributes(db, product.id) == []


def test_deleting_global_attribute_removes_attachments(db, shirt):
    pricing.create_combination(db, shirt.product.id, {shirt.color.id: "Blue", shirt.size.id: "L"}, Decimal("30"))

    catalog.delete_attribute(db, shirt.size.id)

    assert [a.attribute_id for a in attribute_resolver.resolve_product_attributes(db, shirt.product.id)] == [
        shirt.color.id
    ]
    assert pricing.list_combinations(db, shirt.product.id) == []


def test_deleting_category_detaches_by_default(db, make_attribute, make_product):
    product, color, category_attribute = category_sourced(db, make_attribute, make_product)

    catalog.delete_category(db, product.category_id)

    db.refresh(product)
    assert product.category_id is None
    [resolved] = attribute_resolver.resolve_product_attributes(db, product.id)
    assert resolved.attribute_id == color.id
    assert not resolved.is_category_sourced
    assert len(pricing.list_combinations(db, product.id)) == 1


def test_deleting_category_follows_cascade_policy(db, make_attribute, make_product, monkeypatch):
    from catalog_options.core.config import settings

    monkeypatch.setattr(settings, "CATEGORY_ATTRIBUTE_DELETE_POLICY", "cascade")
    product, color, category_attribute = category_sourced(db, make_attribute, make_product)

    catalog.delete_category(db, product.category_id)

    assert attribute_resolver.resolve_product_attributes(db, product.id) == []
    assert pricing.list_combinations(db, product.id) == []
    assert db.query(ProductAttributeOption).count() == 0
    assert catalog.list_products(db)[0].id == product.id


def test_deleting_category_with_explicit_cascade(db, make_attribute, make_product):
    product, color, category_attribute = category_sourced(db, make_attribute, make_product)

    catalog.delete_category(db, product.category_id, policy="cascade")

    assert attribute_resolver.resolve_product_attributes(db, product.id) == []
    assert pricing.list_combinations(db, product.id) == []
