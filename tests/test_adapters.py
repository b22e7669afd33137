from datetime import datetime, timezone

import pytest

from ecom_catalog.adapters import (
    NullString,
    ProductDBAdapter,
    ProductNotFoundError,
    UpdateProductImageURLParams,
    to_null_string,
)
from ecom_catalog.models import db, Product


def test_null_string_mapping():
    assert NullString.from_value(None) == NullString("", False)
    assert NullString.from_value("/static/a.png") == NullString("/static/a.png", True)
    assert NullString("", False).to_value() is None
    assert to_null_string("") == NullString()
    assert to_null_string("/static/a.png").to_value() == "/static/a.png"


def test_get_product_by_id(app, product):
    with app.app_context():
        adapter = ProductDBAdapter(db.session)
        result = adapter.get_product_by_id(product)

    assert result.id == product
    assert result.image_url == NullString("", False)


def test_get_product_with_image(app):
    with app.app_context():
        db.session.add(Product(id="p2", name="Hub", price=49.99, stock=1, image_url="/static/hub.png"))
        db.session.commit()
        result = ProductDBAdapter(db.session).get_product_by_id("p2")

    assert result.image_url == NullString("/static/hub.png", True)


def test_get_missing_product(app):
    with app.app_context():
        with pytest.raises(ProductNotFoundError):
            ProductDBAdapter(db.session).get_product_by_id("nope")


def test_update_product_image_url(app, product):
    ts = int(datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc).timestamp())
    with app.app_context():
        adapter = ProductDBAdapter(db.session)
        adapter.update_product_image_url(UpdateProductImageURLParams(product, "/static/new.png", ts))
        db.session.expire_all()
        row = db.session.get(Product, product)

        assert row.image_url == "/static/new.png"
        assert row.updated_at.replace(tzinfo=None) == datetime(2026, 1, 2, 3, 4, 5)


def test_update_with_empty_url_stores_null(app, product):
    with app.app_context():
        adapter = ProductDBAdapter(db.session)
        adapter.update_product_image_url(UpdateProductImageURLParams(product, "", 0))
        db.session.expire_all()
        assert db.session.get(Product, product).image_url is None


def test_update_missing_product(app):
    with app.app_context():
        with pytest.raises(ProductNotFoundError):
            ProductDBAdapter(db.session).update_product_image_url(
                UpdateProductImageURLParams("nope", "/static/x.png", 0)
            )
