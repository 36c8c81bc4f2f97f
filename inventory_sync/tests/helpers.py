"""
Shared fixtures for the Inventory Sync tests.
"""
from io import BytesIO
import os

from PIL import Image

from inventory_sync.db.connection import create_sqlalchemy_engine
from inventory_sync.db.interface import SQLAlchemyInterface
from inventory_sync.models import Base


def encode(image, image_format='PNG'):
    buffer = BytesIO()
    image.save(buffer, format=image_format)
    return buffer.getvalue()


def noise_image(width, height, mode='RGB'):
    """Random pixels; compresses badly, so the encoded size is large."""
    channels = len(mode)
    return Image.frombytes(mode, (width, height), os.urandom(width * height * channels))


def solid_png(width=10, height=10, color=(200, 30, 30)):
    return encode(Image.new('RGB', (width, height), color))


def memory_tables():
    """SQLAlchemy table interface over a fresh in-memory SQLite database."""
    engine = create_sqlalchemy_engine('sqlite://')
    Base.metadata.create_all(bind=engine)
    return SQLAlchemyInterface(engine)
