import os

from werkzeug.exceptions import BadRequest, RequestEntityTooLarge

IMAGE_FIELD = "image"

ALLOWED_IMAGE_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".gif", ".webp"})

# Compared against the client-declared part header; file bytes are not inspected.
ALLOWED_IMAGE_MIME_TYPES = frozenset({"image/jpeg", "image/png", "image/gif", "image/webp"})


class FormParseError(ValueError):
    pass


class ImageValidationError(ValueError):
    pass


def image_extension(filename):
    return os.path.splitext(filename or "")[1].lower()


def validate_extension(filename):
    ext = image_extension(filename)
    if ext not in ALLOWED_IMAGE_EXTENSIONS:
        raise ImageValidationError(f"unsupported file extension: {ext or '(none)'}")
    return ext


def validate_mime_type(content_type):
    if content_type not in ALLOWED_IMAGE_MIME_TYPES:
        raise ImageValidationError("Unsupported image MIME type")
    return content_type


def validate_image(filename, content_type):
    validate_extension(filename)
    validate_mime_type(content_type)


def parse_image_file(req):
    """Return the uploaded ``image`` part of a multipart request.

    The request's ``max_content_length`` must already be set by the caller;
    a body over that limit surfaces here as a ``FormParseError``.
    """
    if req.mimetype != "multipart/form-data":
        raise FormParseError("request Content-Type isn't multipart/form-data")

    try:
        files = req.files
    except RequestEntityTooLarge as exc:
        raise FormParseError("request body too large") from exc
    except BadRequest as exc:
        raise FormParseError("malformed multipart form") from exc

    file = files.get(IMAGE_FIELD)
    if file is None or not file.filename:
        raise FormParseError(f"no such file in form field '{IMAGE_FIELD}'")
    return file
