import os

from flask import Flask, jsonify, send_from_directory

from .adapters import ProductDBAdapter
from .config import Config, validate_config
from .logs import HandlerLogger, configure_logging, get_logger, init_request_logging
from .models import db
from .routes import EXTENSION_KEY, LOCAL_MESSAGES, S3_MESSAGES, UploadHandlers, uploads_bp
from .storage import create_storage
from .uploads import UploadService


def create_app(config_class=Config, storage=None):
    app = Flask(__name__, static_folder=None)
    app.config.from_object(config_class)
    validate_config(app.config)

    configure_logging(app)
    init_request_logging(app)

    db.init_app(app)

    upload_dir = app.config["UPLOAD_FOLDER"]
    if storage is None:
        storage = create_storage(app.config)
    service = UploadService(ProductDBAdapter(db.session), upload_dir, storage)
    messages = S3_MESSAGES if app.config["UPLOAD_BACKEND"] == "s3" else LOCAL_MESSAGES
    app.extensions[EXTENSION_KEY] = UploadHandlers(
        service,
        HandlerLogger(get_logger(app)),
        app.config["MAX_UPLOAD_SIZE"],
        messages=messages,
    )

    app.register_blueprint(uploads_bp, url_prefix=app.config["API_PREFIX"])

    @app.route("/static/<path:filename>")
    def uploaded_file(filename):
        # Only local-backend images live here; S3 URLs point at the bucket.
        return send_from_directory(os.path.abspath(upload_dir), filename)

    @app.route("/health")
    def health():
        db.session.execute(db.text("SELECT 1"))
        return jsonify({"status": "healthy"})

    with app.app_context():
        db.create_all()

    return app


if __name__ == "__main__":
    app = create_app()
    app.run(debug=True, host="0.0.0.0", port=8001)
