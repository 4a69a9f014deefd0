from decimal import Decimal

import pytest

from catalog_options.core.exceptions import ConflictError, NotFoundError, ValidationError
from catalog_options.models.attribute import AttributeType
from catalog_options.services import attribute_resolver, catalog

from conftest import global_option


def test_attribute_names_are_unique(db, make_attribute):
    make_attribute("color")
    with pytest.raises(ConflictError):
        make_attribute("color")


def test_options_only_for_enumerated_types(db, make_attribute):
    weight = make_attribute("weight", attribute_type=AttributeType.NUMBER)
    with pytest.raises(ValidationError):
        catalog.create_attribute_option(db, weight.id, {"value": "heavy"})


def test_option_values_are_unique_per_attribute(db, make_attribute):
    color = make_attribute("color", ["Red"])
    with pytest.raises(ConflictError):
        catalog.create_attribute_option(db, color.id, {"value": "Red"})


def test_option_defaults(db, make_attribute):
    color = make_attribute("color", ["Red"])
    blue = catalog.create_attribute_option(db, color.id, {"value": " Blue ", "metadata": {"hex": "#00f"}})
    assert blue.value == "Blue"
    assert blue.display_value == "Blue"
    assert blue.sort_order == 1
    assert blue.option_metadata == {"hex": "#00f"}


def test_option_of_other_attribute_is_not_found(db, make_attribute):
    color = make_attribute("color", ["Red"])
    size = make_attribute("size")
    with pytest.raises(NotFoundError):
        catalog.get_attribute_option(db, size.id, color.options[0].id)


def test_cannot_make_attribute_with_options_non_enumerated(db, make_attribute):
    color = make_attribute("color", ["Red"])
    with pytest.raises(ValidationError):
        catalog.update_attribute(db, color.id, {"attribute_type": AttributeType.TEXT})


def test_update_attribute_partial(db, make_attribute):
    color = make_attribute("color", display_name="Color")
    updated = catalog.update_attribute(db, color.id, {"is_filterable": True})
    assert updated.is_filterable is True
    assert updated.display_name == "Color"


def test_product_price_is_decimal(db, make_product):
    product = make_product(base_price="19.99")
    assert product.base_price == Decimal("19.99")
    updated = catalog.update_product(db, product.id, {"base_price": "24.50"})
    assert updated.base_price == Decimal("24.50")


def test_moving_product_with_category_sourced_attributes_is_refused(db, make_attribute, make_product):
    apparel = catalog.create_category(db, {"name": "Apparel"})
    shoes = catalog.create_category(db, {"name": "Shoes"})
    color = make_attribute("color")
    category_attribute = attribute_resolver.attach_attribute_to_category(db, apparel.id, color.id)
    product = make_product(category_id=apparel.id)
    attribute_resolver.add_attribute_to_product(db, product.id, color.id, category_attribute.id)

    with pytest.raises(ConflictError):
        catalog.update_product(db, product.id, {"category_id": shoes.id})


def test_deleting_category_keeps_products(db, make_product):
    category = catalog.create_category(db, {"name": "Apparel"})
    product = make_product(category_id=category.id)

    catalog.delete_category(db, category.id)
    assert catalog.list_products(db)[0].id == product.id
    assert catalog.list_products(db)[0].category_id is None


def test_unknown_parent_category(db):
    with pytest.raises(NotFoundError):
        catalog.create_category(db, {"name": "Orphan", "parent_id": 42})


def test_type_change_refused_while_values_use_another_slot(db, make_attribute, make_product):
    from catalog_options.services import attribute_values

    weight = make_attribute("weight", attribute_type=AttributeType.NUMBER, is_filterable=True)
    category = catalog.create_category(db, {"name": "Kitchen"})
    product = make_product(category_id=category.id)
    attribute_values.create_value(db, product.id, {"attribute_id": weight.id, "number_value": 5.0})

    with pytest.raises(ConflictError):
        catalog.update_attribute(db, weight.id, {"attribute_type": AttributeType.SELECT})
    db.refresh(weight)
    assert AttributeType(weight.attribute_type) == AttributeType.NUMBER
    [aggregated] = attribute_values.aggregate_category_values(db, category.id)
    assert [v.value for v in aggregated.values] == [5.0]


def test_type_change_between_option_types_keeps_values(db, make_attribute, make_product):
    from catalog_options.services import attribute_values

    color = make_attribute("color", ["Red"])
    product = make_product()
    attribute_values.create_value(db, product.id, {"attribute_id": color.id, "option_id": color.options[0].id})

    updated = catalog.update_attribute(db, color.id, {"attribute_type": AttributeType.COLOR})
    assert AttributeType(updated.attribute_type) == AttributeType.COLOR


def test_leaving_multiselect_refused_while_products_hold_several_values(db, make_attribute, make_product):
    from catalog_options.services import attribute_values

    tags = make_attribute("tags", ["eco", "sale"], attribute_type=AttributeType.MULTISELECT)
    product = make_product()
    for option in tags.options:
        attribute_values.create_value(db, product.id, {"attribute_id": tags.id, "option_id": option.id})

    with pytest.raises(ConflictError):
        catalog.update_attribute(db, tags.id, {"attribute_type": AttributeType.SELECT})


def test_renaming_option_used_by_a_combination_is_refused(db, shirt):
    from catalog_options.services import option_resolver, pricing

    combination = pricing.create_combination(db, shirt.product.id, {shirt.color.id: "Blue"}, Decimal("5"))
    blue = next(o for o in shirt.color_pa.options if o.value == "Blue")

    with pytest.raises(ConflictError):
        option_resolver.update_product_option(db, blue.id, {"value": "Navy"}, shirt.color_pa.id)
    with pytest.raises(ConflictError):
        catalog.update_attribute_option(db, shirt.color.id, global_option(shirt.color, "Blue").id, {"value": "Navy"})

    # other fields and unused options stay editable
    option_resolver.update_product_option(db, blue.id, {"display_value": "Deep blue"}, shirt.color_pa.id)
    red = next(o for o in shirt.color_pa.options if o.value == "Red")
    assert option_resolver.update_product_option(db, red.id, {"value": "Crimson"}).value == "Crimson"

    pricing.delete_combination(db, shirt.product.id, combination.id)
    assert option_resolver.update_product_option(db, blue.id, {"value": "Navy"}).value == "Navy"
