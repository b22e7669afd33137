import io
import os

import pytest
import structlog
from structlog.testing import LogCapture

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("UPLOAD_BACKEND", "local")

from ecom_catalog.app import create_app
from ecom_catalog.config import Config
from ecom_catalog.models import db, Product


def make_config(upload_dir, **overrides):
    attrs = {
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": "sqlite://",
        "UPLOAD_FOLDER": str(upload_dir),
        "UPLOAD_BACKEND": "local",
        "S3_BUCKET": "",
        "LOG_DIR": "",
    }
    attrs.update(overrides)
    return type("ConfigForTests", (Config,), attrs)


def image_form(filename="photo.png", content_type="image/png", content=b"\x89PNG\r\n\x1a\nfake"):
    return {"image": (io.BytesIO(content), filename, content_type)}


@pytest.fixture()
def upload_dir(tmp_path):
    return tmp_path / "uploads"


@pytest.fixture()
def app(upload_dir):
    app = create_app(make_config(upload_dir))
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def product(app):
    with app.app_context():
        row = Product(id="prod-1", name="Laptop Stand", price=34.99, stock=10)
        db.session.add(row)
        db.session.commit()
        return row.id


@pytest.fixture()
def log_entries(app):
    """Structlog events as dicts, with the bound request context merged in."""
    capture = LogCapture()
    structlog.contextvars.clear_contextvars()
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            capture,
        ],
    )
    yield capture.entries
    structlog.contextvars.clear_contextvars()
    structlog.reset_defaults()
