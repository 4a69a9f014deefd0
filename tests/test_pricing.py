from decimal import Decimal

import pytest

from catalog_options.core.exceptions import ConflictError, IncompleteSelectionError, ValidationError
from catalog_options.services import attribute_resolver, option_resolver, pricing
from catalog_options.services.combination_keys import combination_hash


def selection(shirt, color=None, size=None):
    chosen = {}
    if color is not None:
        chosen[shirt.color.id] = color
    if size is not None:
        chosen[shirt.size.id] = size
    return chosen


def test_sum_of_option_adjustments(db, shirt):
    quote = pricing.compute_price(db, shirt.product.id, selection(shirt, "Blue", "L"))
    assert quote.final_price == Decimal("135.00")
    assert quote.base_price == Decimal("100.00")
    assert quote.matched_combination_id is None
    assert quote.combination_hash == combination_hash({shirt.color.id: "Blue", shirt.size.id: "L"})
    assert {line.value: line.adjustment for line in quote.breakdown} == {
        "Blue": Decimal("15.00"),
        "L": Decimal("20.00"),
    }


def test_explicit_combination_overrides_the_sum(db, shirt):
    combination = pricing.create_combination(db, shirt.product.id, selection(shirt, "Blue", "L"), Decimal("30.00"))

    quote = pricing.compute_price(db, shirt.product.id, selection(shirt, "Blue", "L"))
    assert quote.final_price == Decimal("130.00")
    assert quote.matched_combination_id == combination.id
    # per-option breakdown is still reported
    assert sum(line.adjustment for line in quote.breakdown) == Decimal("35.00")


def test_selection_order_does_not_matter(db, shirt):
    pricing.create_combination(db, shirt.product.id, selection(shirt, "Blue", "L"), Decimal("30.00"))
    reversed_selection = {shirt.size.id: "L", shirt.color.id: "Blue"}

    quote = pricing.compute_price(db, shirt.product.id, reversed_selection)
    assert quote.final_price == Decimal("130.00")


def test_string_keys_are_accepted(db, shirt):
    quote = pricing.compute_price(db, shirt.product.id, {str(shirt.color.id): "Red"})
    assert quote.final_price == Decimal("100.00")


def test_missing_required_variant_attribute(db, shirt):
    with pytest.raises(IncompleteSelectionError) as excinfo:
        pricing.compute_price(db, shirt.product.id, selection(shirt, size="L"))
    assert excinfo.value.missing_attribute_ids == [shirt.color.id]


def test_blank_value_counts_as_missing(db, shirt):
    with pytest.raises(IncompleteSelectionError):
        pricing.compute_price(db, shirt.product.id, selection(shirt, color="  ", size="L"))


def test_optional_attribute_may_be_left_out(db, shirt):
    quote = pricing.compute_price(db, shirt.product.id, selection(shirt, "Blue"))
    assert quote.final_price == Decimal("115.00")
    assert quote.combination_hash == f"{shirt.color.id}:Blue"


def test_unknown_value_is_rejected(db, shirt):
    with pytest.raises(ValidationError):
        pricing.compute_price(db, shirt.product.id, selection(shirt, "Purple"))


def test_non_variant_and_unattached_keys_are_ignored(db, shirt, make_attribute):
    material = make_attribute("material", ["Cotton"])
    attribute_resolver.add_attribute_to_product(db, shirt.product.id, material.id)
    stray = make_attribute("stray", ["X"], is_variant=True)

    chosen = selection(shirt, "Blue", "L")
    chosen[material.id] = "Cotton"
    chosen[stray.id] = "X"
    quote = pricing.compute_price(db, shirt.product.id, chosen)
    assert quote.final_price == Decimal("135.00")
    assert quote.combination_hash == combination_hash({shirt.color.id: "Blue", shirt.size.id: "L"})


def test_rounding_happens_once_after_summing(db, make_attribute, make_product):
    product = make_product(base_price="0")
    first = make_attribute("engraving", is_variant=True)
    second = make_attribute("wrapping", is_variant=True)
    for attribute in (first, second):
        product_attribute = attribute_resolver.add_attribute_to_product(db, product.id, attribute.id)
        option_resolver.create_product_option(db, product_attribute.id, {"value": "Yes", "price_adjustment": "10.005"})

    quote = pricing.compute_price(db, product.id, {first.id: "Yes", second.id: "Yes"})
    assert quote.final_price == Decimal("20.01")


def test_explicit_base_price(db, shirt):
    quote = pricing.compute_price(db, shirt.product.id, selection(shirt, "Blue"), base_price="50")
    assert quote.final_price == Decimal("65.00")


def test_duplicate_combination_is_a_conflict(db, shirt):
    pricing.create_combination(db, shirt.product.id, selection(shirt, "Blue", "L"), Decimal("30.00"))
    with pytest.raises(ConflictError):
        pricing.create_combination(db, shirt.product.id, {shirt.size.id: "L", shirt.color.id: "Blue"}, Decimal("1"))


def test_combination_stores_display_map(db, shirt):
    combination = pricing.create_combination(db, shirt.product.id, selection(shirt, "Blue", "L"), Decimal("30.00"))
    assert combination.attributes == {"Color": "Blue", "Size": "L"}


def test_update_and_delete_combination(db, shirt):
    combination = pricing.create_combination(db, shirt.product.id, selection(shirt, "Red"), Decimal("5.00"))
    pricing.update_combination(db, shirt.product.id, combination.id, Decimal("-5.00"))
    assert pricing.compute_price(db, shirt.product.id, selection(shirt, "Red")).final_price == Decimal("95.00")

    pricing.delete_combination(db, shirt.product.id, combination.id)
    assert pricing.list_combinations(db, shirt.product.id) == []
    assert pricing.compute_price(db, shirt.product.id, selection(shirt, "Red")).final_price == Decimal("100.00")
