from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import NamedTuple, Optional

from .models import Product as ProductRow


class ProductNotFoundError(LookupError):
    pass


class NullString(NamedTuple):
    """A nullable column value: ``valid`` is False when the column is NULL."""

    string: str = ""
    valid: bool = False

    @classmethod
    def from_value(cls, value: Optional[str]) -> "NullString":
        if value is None:
            return cls()
        return cls(value, True)

    def to_value(self) -> Optional[str]:
        return self.string if self.valid else None


def to_null_string(value: str) -> NullString:
    """Empty strings are stored as NULL."""
    if value == "":
        return NullString()
    return NullString(value, True)


@dataclass
class Product:
    id: str
    image_url: NullString = field(default_factory=NullString)


@dataclass
class UpdateProductImageURLParams:
    id: str
    image_url: str
    updated_at: int  # Unix seconds


class ProductDBAdapter:
    """Maps between the ``products`` table and the upload service's shapes."""

    def __init__(self, session):
        self.session = session

    def _get_row(self, product_id: str) -> ProductRow:
        row = self.session.get(ProductRow, product_id)
        if row is None:
            raise ProductNotFoundError(f"product {product_id!r} not found")
        return row

    def get_product_by_id(self, product_id: str) -> Product:
        row = self._get_row(product_id)
        return Product(id=row.id, image_url=NullString.from_value(row.image_url))

    def update_product_image_url(self, params: UpdateProductImageURLParams) -> None:
        row = self._get_row(params.id)
        row.image_url = to_null_string(params.image_url).to_value()
        row.updated_at = datetime.fromtimestamp(params.updated_at, timezone.utc)
        try:
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
