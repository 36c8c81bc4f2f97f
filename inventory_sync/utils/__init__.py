from .formatting import format_rupiah, placeholder_image_url, thumbnail_or_placeholder
from .validation import validate_stock_form, ensure_valid_stock_form

__all__ = [
    'format_rupiah',
    'placeholder_image_url',
    'thumbnail_or_placeholder',
    'validate_stock_form',
    'ensure_valid_stock_form'
]
