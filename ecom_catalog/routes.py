from dataclasses import dataclass

from flask import Blueprint, current_app, request

from .errors import AppError, ErrorCode, respond_with_error, respond_with_json
from .logs import bind_user_id, get_request_metadata

uploads_bp = Blueprint("uploads", __name__)

EXTENSION_KEY = "ecom_catalog.uploads"

GENERIC_ERROR_MESSAGE = "Something went wrong, please try again later"
INTERNAL_ERROR_MESSAGE = "Internal server error"

# Status and public message per error code. ``None`` means the AppError's own
# message is safe to return to the client.
ERROR_RESPONSES = {
    ErrorCode.MISSING_PRODUCT_ID: (400, None),
    ErrorCode.INVALID_FORM: (400, None),
    ErrorCode.INVALID_IMAGE: (400, None),
    ErrorCode.NOT_FOUND: (404, None),
    ErrorCode.FILE_SAVE_FAILED: (500, GENERIC_ERROR_MESSAGE),
    ErrorCode.DB_ERROR: (500, GENERIC_ERROR_MESSAGE),
}


@dataclass(frozen=True)
class HandlerMessages:
    upload_operation: str
    upload_log: str
    upload_response: str
    update_operation: str
    update_log: str
    update_response: str


LOCAL_MESSAGES = HandlerMessages(
    upload_operation="upload_product_image",
    upload_log="Image uploaded successfully and URL generated",
    upload_response="Image URL created successfully",
    update_operation="update_product_image",
    update_log="Product image updated",
    update_response="Product image updated successfully",
)

S3_MESSAGES = HandlerMessages(
    upload_operation="s3_upload_product_image",
    upload_log="Image uploaded to S3 and URL generated",
    upload_response="Image URL created successfully (S3)",
    update_operation="s3_update_product_image",
    update_log="Product image updated in S3",
    update_response="Product image updated successfully (S3)",
)


def flask_route_param(name):
    return (request.view_args or {}).get(name) or ""


def header_user_id():
    # Authentication happens upstream; this only reads the identity it forwarded.
    return request.headers.get("X-User-ID", "")


class UploadHandlers:
    """HTTP side of the upload service, shared by the local and S3 backends."""

    def __init__(
        self,
        service,
        logger,
        max_upload_size,
        messages=LOCAL_MESSAGES,
        route_param=flask_route_param,
        current_user_id=header_user_id,
    ):
        self.service = service
        self.logger = logger
        self.messages = messages
        self.max_upload_size = max_upload_size
        self.route_param = route_param
        self.current_user_id = current_user_id

    def upload_product_image(self):
        msgs = self.messages
        return self._handle(
            self.service.upload_product_image,
            msgs.upload_operation,
            msgs.upload_log,
            msgs.upload_response,
        )

    def update_product_image_by_id(self):
        msgs = self.messages
        product_id = self.route_param("id")
        if not product_id:
            ip, user_agent = get_request_metadata(request)
            err = AppError(ErrorCode.MISSING_PRODUCT_ID, "Product ID not found")
            return self.handle_upload_error(err, msgs.update_operation, ip, user_agent)

        def update(user_id, req):
            return self.service.update_product_image(product_id, user_id, req)

        return self._handle(update, msgs.update_operation, msgs.update_log, msgs.update_response)

    def _handle(self, call, operation, log_msg, response_msg):
        ip, user_agent = get_request_metadata(request)
        request.max_content_length = self.max_upload_size
        user_id = self.current_user_id()
        bind_user_id(user_id)

        try:
            image_url = call(user_id, request)
        except Exception as exc:
            return self.handle_upload_error(exc, operation, ip, user_agent)

        self.logger.log_handler_success(operation, log_msg, ip, user_agent)
        return respond_with_json(200, {"message": response_msg, "image_url": image_url})

    def handle_upload_error(self, err, operation, ip, user_agent):
        if not isinstance(err, AppError):
            self.logger.log_handler_error(
                operation, "unknown_error", "Unknown error occurred", ip, user_agent, err
            )
            return respond_with_error(500, INTERNAL_ERROR_MESSAGE)

        status, public_message = ERROR_RESPONSES[err.code]
        cause = None if err.code is ErrorCode.MISSING_PRODUCT_ID else err.err
        self.logger.log_handler_error(
            operation, err.code.value, err.message, ip, user_agent, cause
        )
        return respond_with_error(status, public_message or err.message)


def _handlers():
    return current_app.extensions[EXTENSION_KEY]


@uploads_bp.route("/products/upload-image", methods=["POST"])
def upload_product_image():
    return _handlers().upload_product_image()


@uploads_bp.route("/products/<id>/image", methods=["POST"])
def update_product_image(id):
    return _handlers().update_product_image_by_id()
