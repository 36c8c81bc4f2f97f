"""
Unit tests for row enrichment and storage row building.
"""
import unittest

from inventory_sync.core.reconciler import enrich, to_storage_row, parse_number
from inventory_sync.models import (
    Reference, ReferenceKind, StockForm, StockStatus, EnrichedStockItem, NULL_REFERENCE
)
from inventory_sync.services.catalog_service import CatalogSnapshot


def sample_catalog():
    return CatalogSnapshot(
        categories=[Reference(1, 'Hardware'), Reference(2, 'Paint')],
        warehouses=[Reference(10, 'North'), Reference(11, 'South')]
    )


def sample_row(**overrides):
    row = {
        'id': 7,
        'name': 'Bolt M8',
        'quantity': 40,
        'price': 1500,
        'threshold': 10,
        'category': 'Hardware',
        'warehouse': 'North',
        'thumbnail': 'https://cdn.example.com/bolt.jpg',
    }
    row.update(overrides)
    return row


class TestParseNumber(unittest.TestCase):
    """Test cases for numeric coercion of form input."""

    def test_numeric_strings(self):
        self.assertEqual(parse_number('12'), 12)
        self.assertEqual(parse_number('12.5'), 12.5)
        self.assertEqual(parse_number(' 3 '), 3)

    def test_integral_values_become_int(self):
        value = parse_number('5.0')
        self.assertEqual(value, 5)
        self.assertIsInstance(value, int)

    def test_invalid_input_is_zero(self):
        for raw in ['', 'abc', None, '12abc', float('nan'), 'inf', True, [1]]:
            self.assertEqual(parse_number(raw), 0, raw)

    def test_negative_is_zero(self):
        self.assertEqual(parse_number('-4'), 0)


class TestEnrich(unittest.TestCase):
    """Test cases for enrich."""

    def setUp(self):
        self.catalog = sample_catalog()

    def test_resolves_names(self):
        item = enrich(sample_row(), self.catalog)

        self.assertEqual(item.category, Reference(1, 'Hardware'))
        self.assertEqual(item.warehouse, Reference(10, 'North'))
        self.assertEqual(item.category_id, 1)
        self.assertEqual(item.warehouse_id, 10)

    def test_orphaned_name_keeps_text(self):
        """A name with no live category gets a null id, never an error."""
        item = enrich(sample_row(category='Discontinued Stuff'), self.catalog)

        self.assertIsNone(item.category.id)
        self.assertEqual(item.category.name, 'Discontinued Stuff')
        self.assertIsNone(item.category_id)
        self.assertFalse(item.category.is_resolved)

    def test_missing_names_give_null_identity(self):
        item = enrich(sample_row(category=None, warehouse=''), self.catalog)

        self.assertEqual(item.category, NULL_REFERENCE)
        self.assertEqual(item.warehouse, NULL_REFERENCE)

    def test_extra_columns_are_kept_aside(self):
        item = enrich(sample_row(created_at='2024-01-01T00:00:00'), self.catalog)
        self.assertEqual(item.extra, {'created_at': '2024-01-01T00:00:00'})

    def test_empty_catalog(self):
        item = enrich(sample_row(), CatalogSnapshot())
        self.assertEqual(item.category, Reference(None, 'Hardware'))


class TestToStorageRow(unittest.TestCase):
    """Test cases for to_storage_row."""

    def setUp(self):
        self.catalog = sample_catalog()

    def test_round_trip(self):
        """Enriching then writing back reproduces the stored row."""
        for row in [
            sample_row(),
            sample_row(id=8, name='Primer', category='Paint', warehouse='South', price=12.5, thumbnail=None),
            sample_row(quantity=0, threshold=0),
        ]:
            self.assertEqual(to_storage_row(enrich(row, self.catalog), self.catalog), row)

    def test_round_trip_without_reference_names(self):
        """A missing category or warehouse comes back as an absent key, not None."""
        for column in ('category', 'warehouse'):
            row = sample_row(**{column: None})
            expected = {key: value for key, value in row.items() if key != column}

            self.assertEqual(to_storage_row(enrich(row, self.catalog), self.catalog), expected)

    def test_ids_resolve_to_names(self):
        form = StockForm(name='Nail', quantity='100', price='250', threshold='20',
                         category_id='2', warehouse_id=11)
        row = to_storage_row(form, self.catalog)

        self.assertEqual(row, {
            'name': 'Nail',
            'quantity': 100,
            'price': 250,
            'threshold': 20,
            'thumbnail': None,
            'category': 'Paint',
            'warehouse': 'South',
        })

    def test_unresolved_id_drops_field(self):
        """An id missing from the catalog leaves the column out of the row."""
        form = StockForm(name='Nail', category_id=99, warehouse_id=10)
        row = to_storage_row(form, self.catalog)

        self.assertNotIn('category', row)
        self.assertEqual(row['warehouse'], 'North')

    def test_orphaned_item_drops_field(self):
        item = enrich(sample_row(category='Gone'), self.catalog)
        row = to_storage_row(item, self.catalog)
        self.assertNotIn('category', row)

    def test_no_selection_omits_fields(self):
        row = to_storage_row(StockForm(name='Nail', category_id='', warehouse_id=None), self.catalog)
        self.assertNotIn('category', row)
        self.assertNotIn('warehouse', row)
        self.assertNotIn('id', row)

    def test_bad_numbers_do_not_fail(self):
        row = to_storage_row(StockForm(name='Nail', quantity='lots', price='', threshold='x'), self.catalog)
        self.assertEqual((row['quantity'], row['price'], row['threshold']), (0, 0, 0))


class TestStockStatus(unittest.TestCase):
    """Test cases for the low stock boundary."""

    def test_boundary(self):
        self.assertEqual(StockStatus.for_levels(5, 10), StockStatus.LOW_STOCK)
        self.assertEqual(StockStatus.for_levels(10, 10), StockStatus.LOW_STOCK)
        self.assertEqual(StockStatus.for_levels(11, 10), StockStatus.IN_STOCK)

    def test_item_status_and_value(self):
        item = EnrichedStockItem(id=1, name='Bolt', quantity=4, price=2500, threshold=5)
        self.assertEqual(str(item.status), 'Low Stock')
        self.assertEqual(item.value, 10000)

    def test_form_from_item(self):
        item = enrich(sample_row(), sample_catalog())
        form = StockForm.from_item(item)

        self.assertEqual(form.id, 7)
        self.assertEqual(form.category_id, 1)
        self.assertEqual(form.warehouse_id, 10)
        self.assertIsNone(form.asset)

    def test_blank_form_threshold(self):
        self.assertEqual(StockForm.blank(15).threshold, 15)


class TestReferenceKind(unittest.TestCase):

    def test_values_are_table_names(self):
        self.assertEqual(str(ReferenceKind.CATEGORY), 'category')
        self.assertEqual(ReferenceKind.WAREHOUSE.value, 'warehouse')


if __name__ == '__main__':
    unittest.main()
