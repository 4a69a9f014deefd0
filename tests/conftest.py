import os

# Settings are read at import time; keep tests off the file database and redis
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CACHE_ENABLED"] = "false"

from decimal import Decimal
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from catalog_options.api import deps
from catalog_options.db.init_db import init_db
from catalog_options.db.session import build_engine
from catalog_options.main import app
from catalog_options.models.attribute import AttributeType
from catalog_options.services import attribute_resolver, catalog, option_resolver


@pytest.fixture
def engine():
    test_engine = build_engine("sqlite://", poolclass=StaticPool)
    init_db(test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[deps.get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_attribute(db):
    def _make(name, options=(), attribute_type=AttributeType.SELECT, **fields):
        fields.setdefault("display_name", name.replace("_", " ").title())
        attribute = catalog.create_attribute(
            db, dict(name=name, attribute_type=attribute_type, **fields)
        )
        for value in options:
            catalog.create_attribute_option(db, attribute.id, {"value": value})
        return attribute
    return _make


@pytest.fixture
def make_product(db):
    def _make(name="T-Shirt", base_price="100.00", category_id=None):
        return catalog.create_product(
            db, {"name": name, "base_price": Decimal(base_price), "category_id": category_id}
        )
    return _make


def global_option(attribute, value):
    return next(option for option in attribute.options if option.value == value)


@pytest.fixture
def shirt(db, make_attribute, make_product):
    """Base price 100.00; Color (required) Red +0 / Blue +15; Size S +0 / L +20."""
    category = catalog.create_category(db, {"name": "Apparel"})
    product = make_product(category_id=category.id)
    color = make_attribute("color", ["Red", "Blue"], is_variant=True, is_required=True)
    size = make_attribute("size", ["S", "L"], is_variant=True, sort_order=1)

    color_pa = attribute_resolver.add_attribute_to_product(db, product.id, color.id)
    size_pa = attribute_resolver.add_attribute_to_product(db, product.id, size.id)
    prices = {"Red": "0", "Blue": "15.00", "S": "0", "L": "20.00"}
    for attribute, product_attribute in ((color, color_pa), (size, size_pa)):
        for option in attribute.options:
            option_resolver.create_product_option(
                db,
                product_attribute.id,
                {
                    "value": option.value,
                    "base_option_id": option.id,
                    "price_adjustment": Decimal(prices[option.value]),
                },
            )
    return SimpleNamespace(
        category=category,
        product=product,
        color=color,
        size=size,
        color_pa=color_pa,
        size_pa=size_pa,
    )
