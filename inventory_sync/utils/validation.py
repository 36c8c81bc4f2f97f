# inventory_sync/utils/validation.py
from typing import Dict

from inventory_sync.exceptions import ValidationError
from inventory_sync.models import StockForm

def validate_stock_form(form: StockForm) -> Dict[str, str]:
    """Validate a stock edit form.

    Numeric fields are not checked here; the reconciler coerces them.

    Args:
        form: Form to validate

    Returns:
        Dictionary with validation errors
    """
    errors = {}

    if not (form.name or '').strip():
        errors['name'] = 'Item name is required'

    return errors

def ensure_valid_stock_form(form: StockForm) -> None:
    """Raise ValidationError when the form has errors."""
    errors = validate_stock_form(form)
    if errors:
        raise ValidationError('; '.join(errors.values()), details=errors)
