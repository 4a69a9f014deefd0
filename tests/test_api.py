from decimal import Decimal

API = "/api/v1/catalog"


def create(client, path, payload):
    response = client.post(f"{API}{path}", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def build_shirt(client):
    category = create(client, "/categories/", {"name": "Apparel"})
    product = create(client, "/products/", {"name": "T-Shirt", "base_price": "100.00", "category_id": category["id"]})
    color = create(
        client,
        "/attributes/",
        {"name": "color", "display_name": "Color", "is_variant": True, "is_required": True},
    )
    size = create(client, "/attributes/", {"name": "size", "display_name": "Size", "is_variant": True, "sort_order": 1})
    for attribute, values in ((color, ("Red", "Blue")), (size, ("S", "L"))):
        for value in values:
            create(client, f"/attributes/{attribute['id']}/options", {"value": value})

    prices = {"Red": "0", "Blue": "15.00", "S": "0", "L": "20.00"}
    for attribute in (color, size):
        attached = create(client, f"/products/{product['id']}/attributes", {"attribute_id": attribute["id"]})
        for option in attached["options"]:
            create(
                client,
                f"/products/{product['id']}/attributes/{attached['product_attribute_id']}/options",
                {
                    "value": option["value"],
                    "base_option_id": option["id"],
                    "price_adjustment": prices[option["value"]],
                },
            )
    return product, color, size


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200


def test_attribute_listing_and_types(client):
    create(client, "/attributes/", {"name": "color", "display_name": "Color"})
    listing = client.get(f"{API}/attributes/")
    assert listing.status_code == 200
    assert [a["name"] for a in listing.json()] == ["color"]
    assert "multiselect" in client.get(f"{API}/attributes/types").json()


def test_price_endpoint_with_and_without_combination(client):
    product, color, size = build_shirt(client)
    selection = {str(color["id"]): "Blue", str(size["id"]): "L"}

    quote = client.post(f"{API}/products/{product['id']}/price", json={"selection": selection})
    assert quote.status_code == 200, quote.text
    assert Decimal(quote.json()["final_price"]) == Decimal("135.00")
    assert len(quote.json()["breakdown"]) == 2

    combination = create(
        client,
        f"/products/{product['id']}/combinations",
        {"selection": selection, "price_adjustment": "30.00"},
    )
    quote = client.post(f"{API}/products/{product['id']}/price", json={"selection": selection})
    assert Decimal(quote.json()["final_price"]) == Decimal("130.00")
    assert quote.json()["matched_combination_id"] == combination["id"]


def test_error_mapping(client):
    product, color, size = build_shirt(client)

    missing = client.post(f"{API}/products/{product['id']}/price", json={"selection": {str(size["id"]): "L"}})
    assert missing.status_code == 422
    assert missing.json()["code"] == "INCOMPLETE_SELECTION"
    assert missing.json()["details"]["missing_attribute_ids"] == [color["id"]]

    unknown = client.post(f"{API}/products/{product['id']}/price", json={"selection": {str(color["id"]): "Purple"}})
    assert unknown.status_code == 422
    assert unknown.json()["code"] == "VALIDATION_ERROR"

    not_found = client.get(f"{API}/products/9999/attributes")
    assert not_found.status_code == 404
    assert not_found.json()["code"] == "NOT_FOUND"

    duplicate = client.post(f"{API}/products/{product['id']}/attributes", json={"attribute_id": color["id"]})
    assert duplicate.status_code == 409
    assert duplicate.json()["code"] == "CONFLICT"


def test_product_attribute_overrides_over_http(client):
    product, color, size = build_shirt(client)
    attributes = client.get(f"{API}/products/{product['id']}/attributes").json()
    assert [a["display_name"] for a in attributes] == ["Color", "Size"]
    assert attributes[0]["option_source"] == "product"

    color_pa = attributes[0]["product_attribute_id"]
    renamed = client.put(
        f"{API}/products/{product['id']}/attributes/{color_pa}",
        json={"override_display_name": "Shade"},
    )
    assert renamed.json()["display_name"] == "Shade"
    assert renamed.json()["sources"]["display_name"] == "product"

    cleared = client.put(
        f"{API}/products/{product['id']}/attributes/{color_pa}",
        json={"override_display_name": None},
    )
    assert cleared.json()["display_name"] == "Color"


def test_delete_product_attribute_over_http(client):
    product, color, size = build_shirt(client)
    selection = {str(color["id"]): "Blue", str(size["id"]): "L"}
    create(client, f"/products/{product['id']}/combinations", {"selection": selection, "price_adjustment": "30"})
    size_pa = client.get(f"{API}/products/{product['id']}/attributes").json()[1]["product_attribute_id"]

    response = client.delete(f"{API}/products/{product['id']}/attributes/{size_pa}")
    assert response.status_code == 200
    assert client.get(f"{API}/products/{product['id']}/combinations").json() == []
    remaining = client.get(f"{API}/products/{product['id']}/attributes").json()
    assert [a["attribute_id"] for a in remaining] == [color["id"]]


def test_attribute_values_over_http(client):
    category = create(client, "/categories/", {"name": "Apparel"})
    product = create(client, "/products/", {"name": "Mug", "category_id": category["id"]})
    weight = create(
        client,
        "/attributes/",
        {"name": "weight", "display_name": "Weight", "attribute_type": "number", "is_filterable": True},
    )

    mismatch = client.post(
        f"{API}/products/{product['id']}/attribute-values",
        json={"attribute_id": weight["id"], "text_value": "heavy"},
    )
    assert mismatch.status_code == 422
    assert mismatch.json()["code"] == "TYPE_MISMATCH"

    created = create(
        client,
        f"/products/{product['id']}/attribute-values",
        {"attribute_id": weight["id"], "number_value": 350},
    )
    assert created["value"] == 350

    aggregated = client.get(f"{API}/categories/{category['id']}/attribute-values").json()
    assert aggregated[0]["name"] == "weight"
    assert aggregated[0]["values"][0]["product_count"] == 1


def test_category_attribute_delete_policy_query(client):
    category = create(client, "/categories/", {"name": "Apparel"})
    color = create(client, "/attributes/", {"name": "color", "display_name": "Color"})
    attached = create(client, f"/categories/{category['id']}/attributes", {"attribute_id": color["id"]})

    bad = client.delete(
        f"{API}/categories/{category['id']}/attributes/{attached['category_attribute_id']}",
        params={"policy": "explode"},
    )
    assert bad.status_code == 422

    ok = client.delete(
        f"{API}/categories/{category['id']}/attributes/{attached['category_attribute_id']}",
        params={"policy": "cascade"},
    )
    assert ok.status_code == 200
    assert client.get(f"{API}/categories/{category['id']}/attributes").json() == []


def test_category_delete_accepts_policy_query(client):
    category = create(client, "/categories/", {"name": "Apparel"})
    product = create(client, "/products/", {"name": "T-Shirt", "category_id": category["id"]})
    color = create(client, "/attributes/", {"name": "color", "display_name": "Color"})
    attached = create(client, f"/categories/{category['id']}/attributes", {"attribute_id": color["id"]})
    create(
        client,
        f"/products/{product['id']}/attributes",
        {"attribute_id": color["id"], "category_attribute_id": attached["category_attribute_id"]},
    )

    assert client.delete(f"{API}/categories/{category['id']}", params={"policy": "explode"}).status_code == 422
    response = client.delete(f"{API}/categories/{category['id']}", params={"policy": "cascade"})
    assert response.status_code == 200
    assert client.get(f"{API}/products/{product['id']}/attributes").json() == []
