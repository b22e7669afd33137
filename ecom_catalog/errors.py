from enum import Enum

from flask import current_app, jsonify


class ErrorCode(str, Enum):
    MISSING_PRODUCT_ID = "missing_product_id"
    INVALID_FORM = "invalid_form"
    INVALID_IMAGE = "invalid_image"
    NOT_FOUND = "not_found"
    FILE_SAVE_FAILED = "file_save_failed"
    DB_ERROR = "db_error"


class AppError(Exception):
    """Typed failure carrying a machine-readable code, a message and the cause."""

    def __init__(self, code, message, err=None):
        super().__init__(message)
        self.code = ErrorCode(code)
        self.message = message
        self.err = err

    def __str__(self):
        if self.err is not None:
            return f"{self.message}: {self.err}"
        return self.message

    def __repr__(self):
        return f"AppError(code={self.code.value!r}, message={self.message!r}, err={self.err!r})"


def respond_with_json(status, payload):
    return jsonify(payload), status


def respond_with_error(status, message):
    if status > 499:
        current_app.logger.error("Responding with 5XX error: %s", message)
    return respond_with_json(status, {"error": message})
