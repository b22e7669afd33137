"""Product image upload workflows.

``UploadService`` turns a multipart request into a stored image and, for
updates, points the product row at the new image. It never logs: every failure
is raised as an ``AppError`` and the HTTP layer decides what to report.

Updating an image is three separate side effects, in this order:

1. delete the product's current image (failures ignored),
2. save the new file,
3. write the new URL to the product row.

Nothing wraps them in a transaction. A failure in step 2 leaves the product
pointing at a deleted image; a failure in step 3 leaves the new file stored
while the row still holds the old URL (``db_error``).
"""
import time

from .adapters import UpdateProductImageURLParams
from .errors import AppError, ErrorCode
from .storage import StorageError
from .validation import FormParseError, ImageValidationError, parse_image_file, validate_image


class UploadService:
    def __init__(self, db, upload_dir, storage):
        self.db = db
        self.upload_dir = upload_dir
        self.storage = storage

    def _get_valid_image(self, req):
        try:
            file = parse_image_file(req)
        except FormParseError as exc:
            raise AppError(ErrorCode.INVALID_FORM, str(exc), exc) from exc

        try:
            validate_image(file.filename, file.content_type)
        except ImageValidationError as exc:
            raise AppError(ErrorCode.INVALID_IMAGE, str(exc), exc) from exc
        return file

    def _save(self, file):
        try:
            location = self.storage.save(file, self.upload_dir)
        except StorageError as exc:
            raise AppError(ErrorCode.FILE_SAVE_FAILED, str(exc), exc) from exc
        return self.storage.get_url(location)

    def upload_product_image(self, user_id, req):
        """Store a new product image and return its public URL."""
        file = self._get_valid_image(req)
        return self._save(file)

    def update_product_image(self, product_id, user_id, req):
        """Replace a product's image and return the new public URL."""
        try:
            product = self.db.get_product_by_id(product_id)
        except Exception as exc:
            raise AppError(ErrorCode.NOT_FOUND, "Product not found", exc) from exc

        file = self._get_valid_image(req)

        if product.image_url.valid and product.image_url.string:
            try:
                self.storage.delete(product.image_url.string, self.upload_dir)
            except Exception:
                pass  # old image may be orphaned

        image_url = self._save(file)

        params = UpdateProductImageURLParams(
            id=product_id,
            image_url=image_url,
            updated_at=int(time.time()),
        )
        try:
            self.db.update_product_image_url(params)
        except Exception as exc:
            raise AppError(ErrorCode.DB_ERROR, "Failed to update product image", exc) from exc
        return image_url
