"""Seed the catalog database with sample products.

Images found in ``seed_images/`` are copied into the local upload folder and
linked as ``/static/<name>``; products whose image is missing are seeded
without one.
"""
import os
import shutil
import time
import uuid
from decimal import Decimal

from .models import db, Product

SEED_IMAGES_DIR = os.path.join(os.path.dirname(__file__), "..", "seed_images")

PRODUCTS = [
    {"name": "Wireless Headphones", "description": "Noise-cancelling over-ear headphones with 30hr battery life.", "price": Decimal("79.99"), "stock": 50, "image": "headphones.jpg"},
    {"name": "Mechanical Keyboard", "description": "RGB mechanical keyboard with Cherry MX switches.", "price": Decimal("129.99"), "stock": 30, "image": "keyboard.jpg"},
    {"name": "USB-C Hub", "description": "7-in-1 USB-C hub with HDMI, USB 3.0, and SD card reader.", "price": Decimal("49.99"), "stock": 100, "image": "usb-hub.jpg"},
    {"name": "Laptop Stand", "description": "Adjustable aluminum laptop stand for ergonomic viewing.", "price": Decimal("34.99"), "stock": 75, "image": "laptop-stand.jpg"},
    {"name": "Webcam HD", "description": "1080p webcam with built-in microphone and auto-focus.", "price": Decimal("59.99"), "stock": 45, "image": "webcam.jpg"},
]


def seed(app, images_dir=SEED_IMAGES_DIR):
    with app.app_context():
        db.create_all()
        if Product.query.first():
            print("Catalog already has data. Skipping seed.")
            return 0

        upload_dir = app.config["UPLOAD_FOLDER"]
        os.makedirs(upload_dir, exist_ok=True)
        for entry in PRODUCTS:
            p = dict(entry)
            image_file = p.pop("image")
            src = os.path.join(images_dir, image_file)
            if os.path.exists(src):
                ext = os.path.splitext(image_file)[1].lower()
                dest_name = f"{uuid.uuid4().hex}_{int(time.time())}{ext}"
                shutil.copy2(src, os.path.join(upload_dir, dest_name))
                p["image_url"] = f"/static/{dest_name}"

            db.session.add(Product(id=str(uuid.uuid4()), **p))

        db.session.commit()
        print(f"Seeded {len(PRODUCTS)} products.")
        return len(PRODUCTS)


if __name__ == "__main__":
    from .app import create_app

    seed(create_app())
