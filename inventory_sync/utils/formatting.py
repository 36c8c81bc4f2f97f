# inventory_sync/utils/formatting.py
from urllib.parse import quote

PLACEHOLDER_AVATAR_URL = 'https://ui-avatars.com/api/'

def format_rupiah(amount) -> str:
    """Format an amount as Indonesian Rupiah without fraction digits.

    Args:
        amount: Numeric amount (None counts as 0)

    Returns:
        String such as 'Rp 1.250.000'
    """
    value = round(float(amount or 0))
    sign = '-' if value < 0 else ''
    grouped = f"{abs(value):,}".replace(',', '.')
    return f"{sign}Rp {grouped}"

def placeholder_image_url(item_name: str, size: int = 128) -> str:
    """Generated avatar for items without a thumbnail."""
    encoded = quote(item_name or '', safe="-_.!~*'()")
    return f"{PLACEHOLDER_AVATAR_URL}?name={encoded}&background=random&color=fff&size={size}"

def thumbnail_or_placeholder(item) -> str:
    return item.thumbnail or placeholder_image_url(item.name)
