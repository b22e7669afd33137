import os
import time
import uuid
from urllib.parse import urlparse

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .validation import ALLOWED_IMAGE_EXTENSIONS, image_extension

STATIC_PREFIX = "/static/"
S3_KEY_PREFIX = "uploads/"


class StorageError(Exception):
    pass


def _generate_name(ext):
    return f"{uuid.uuid4().hex}_{int(time.time())}{ext}"


def _rewind(file):
    stream = getattr(file, "stream", file)
    if hasattr(stream, "seek"):
        stream.seek(0)


def _resolve_inside(upload_dir, name):
    base = os.path.abspath(upload_dir)
    path = os.path.abspath(os.path.join(base, name))
    if path == base or os.path.commonpath([base, path]) != base:
        raise StorageError(f"invalid file path: {name}")
    return path


class LocalStorage:
    """Stores product images in a directory served under /static/."""

    def save(self, file, upload_dir):
        try:
            os.makedirs(upload_dir, mode=0o750, exist_ok=True)
        except OSError as exc:
            raise StorageError(f"failed to create upload directory: {exc}") from exc

        filepath = _resolve_inside(upload_dir, _generate_name(image_extension(file.filename)))
        _rewind(file)
        try:
            file.save(filepath)
        except OSError as exc:
            raise StorageError(f"failed to write file: {exc}") from exc
        return filepath

    def get_url(self, image_path):
        if not image_path:
            return ""
        return f"{STATIC_PREFIX}{os.path.basename(image_path)}"

    def delete(self, image_url, upload_dir):
        if not image_url:
            return
        if not image_url.startswith(STATIC_PREFIX):
            raise StorageError("invalid image URL format")

        filepath = _resolve_inside(upload_dir, image_url[len(STATIC_PREFIX):])
        if not os.path.exists(filepath):
            return
        try:
            os.remove(filepath)
        except OSError as exc:
            raise StorageError(f"failed to delete file: {exc}") from exc


class S3Storage:
    """Stores product images in an S3 bucket and hands out public bucket URLs."""

    def __init__(self, bucket, client=None, region=None):
        self.bucket = bucket
        self.s3 = client if client is not None else boto3.client("s3", region_name=region)

    def save(self, file, upload_dir=None):
        ext = image_extension(file.filename)
        if ext not in ALLOWED_IMAGE_EXTENSIONS:
            raise StorageError(f"unsupported file extension: {ext}")

        key = f"{S3_KEY_PREFIX}{_generate_name(ext)}"
        _rewind(file)
        try:
            self.s3.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=file.stream,
                ContentType=file.content_type or "application/octet-stream",
            )
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"failed to upload file to S3: {exc}") from exc
        return self.object_url(key)

    def object_url(self, key):
        return f"https://{self.bucket}.s3.amazonaws.com/{key}"

    def get_url(self, image_path):
        return image_path or ""

    def delete(self, image_url, upload_dir=None):
        try:
            parsed = urlparse(image_url)
        except ValueError as exc:
            raise StorageError(f"invalid image URL: {exc}") from exc

        key = parsed.path[1:] if parsed.path.startswith("/") else parsed.path
        if not key:
            raise StorageError("invalid image URL: missing key")

        try:
            self.s3.delete_object(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"failed to delete file from S3: {exc}") from exc


def create_storage(config):
    if config.get("UPLOAD_BACKEND") == "s3":
        return S3Storage(config["S3_BUCKET"], region=config.get("AWS_REGION"))
    return LocalStorage()
