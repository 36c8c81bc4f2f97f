"""
Unit tests for display formatting and form validation helpers.
"""
import unittest

import pytest

from inventory_sync.exceptions import ValidationError
from inventory_sync.models import EnrichedStockItem, StockForm
from inventory_sync.utils.formatting import format_rupiah, placeholder_image_url, thumbnail_or_placeholder
from inventory_sync.utils.validation import validate_stock_form, ensure_valid_stock_form


@pytest.mark.parametrize("amount, expected", [
    (1250000, 'Rp 1.250.000'),
    (0, 'Rp 0'),
    (None, 'Rp 0'),
    (999, 'Rp 999'),
    (1234.6, 'Rp 1.235'),
    (-5000, '-Rp 5.000'),
])
def test_format_rupiah(amount, expected):
    assert format_rupiah(amount) == expected


class TestPlaceholder(unittest.TestCase):
    def test_name_is_url_encoded(self):
        url = placeholder_image_url('Bolt M8 & Nut')
        self.assertIn('name=Bolt%20M8%20%26%20Nut', url)
        self.assertTrue(url.startswith('https://ui-avatars.com/api/?'))

    def test_thumbnail_wins(self):
        item = EnrichedStockItem(id=1, name='Bolt', thumbnail='https://cdn.test/a.jpg')
        self.assertEqual(thumbnail_or_placeholder(item), 'https://cdn.test/a.jpg')

    def test_missing_thumbnail(self):
        item = EnrichedStockItem(id=1, name='Bolt')
        self.assertIn('name=Bolt', thumbnail_or_placeholder(item))


class TestValidation(unittest.TestCase):
    def test_valid_form(self):
        self.assertEqual(validate_stock_form(StockForm(name='Hammer', quantity='abc')), {})

    def test_blank_name(self):
        errors = validate_stock_form(StockForm(name=' '))
        self.assertIn('name', errors)

        with self.assertRaises(ValidationError) as context:
            ensure_valid_stock_form(StockForm(name=''))
        self.assertEqual(context.exception.details, {'name': 'Item name is required'})


if __name__ == '__main__':
    unittest.main()
