"""
Tests for the sync controller.
"""
import asyncio
import tempfile
import time
import unittest
from unittest.mock import AsyncMock, patch

from PIL import Image

from inventory_sync.core.image_compressor import ImageCompressor
from inventory_sync.db.interface import TableInterface
from inventory_sync.db.storage import LocalStorage
from inventory_sync.exceptions import RemoteReadFailure, RemoteWriteFailure
from inventory_sync.models import Reference, ReferenceKind, StockForm, StockStatus
from inventory_sync.services.asset_service import AssetService
from inventory_sync.services.sync_controller import SyncController, SyncState
from inventory_sync.tests.helpers import encode, memory_tables, noise_image

DEBOUNCE = 0.2


class SlowPageTables(TableInterface):
    """Fake table interface where page 2 answers much later than page 3."""

    def select(self, table_name, predicate=None, order=None, range_=None):
        if table_name != 'stock':
            return [], 0
        if range_.start == 10:
            time.sleep(0.3)
        rows = [{'id': range_.start + i, 'name': f"item {range_.start + i}", 'quantity': 1,
                 'price': 1, 'threshold': 0} for i in range(range_.limit)]
        return rows, 100

    def insert(self, table_name, data):
        raise NotImplementedError

    def update(self, table_name, row_id, data):
        raise NotImplementedError

    def delete(self, table_name, row_id):
        raise NotImplementedError


class ChangingCatalogTables(SlowPageTables):
    """Categories are renamed between reads; the first warehouse read fails."""

    def __init__(self):
        self.category_reads = 0
        self.warehouse_reads = 0

    def select(self, table_name, predicate=None, order=None, range_=None):
        if table_name == 'category':
            self.category_reads += 1
            name = 'Old Name' if self.category_reads == 1 else 'New Name'
            return [{'id': 1, 'name': name}], 1
        if table_name == 'warehouse':
            self.warehouse_reads += 1
            if self.warehouse_reads == 1:
                raise RemoteReadFailure('warehouse read timed out')
            return [], 0
        return super().select(table_name, predicate, order, range_)


class ControllerTestCase(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.tempdir = tempfile.TemporaryDirectory()
        self.tables = memory_tables()
        self.storage = LocalStorage(self.tempdir.name, 'http://cdn.test/thumbs')
        compressor = ImageCompressor(quality=75, bits_per_pixel=3, safety_factor=0.9, max_passes=1)
        self.controller = SyncController(
            self.tables,
            self.storage,
            assets=AssetService(self.storage, compressor),
            page_size=10,
            debounce_seconds=DEBOUNCE
        )

    def tearDown(self):
        self.controller.close()
        self.tempdir.cleanup()

    def seed(self, count=12):
        self.tables.insert('category', {'name': 'Hardware'})
        self.tables.insert('category', {'name': 'Paint'})
        self.tables.insert('warehouse', {'name': 'North'})
        for i in range(count):
            self.tables.insert('stock', {
                'name': f"Bolt {i:02d}",
                'quantity': i,
                'price': 1000,
                'threshold': 10,
                'category': 'Hardware' if i % 2 == 0 else 'Paint',
                'warehouse': 'North'
            })


class TestLoad(ControllerTestCase):
    """Test cases for reads and pagination."""

    async def test_load_publishes_first_page(self):
        self.seed(12)

        applied = await self.controller.load()
        view = self.controller.view

        self.assertTrue(applied)
        self.assertEqual(view.state, SyncState.READY)
        self.assertEqual(len(view.items), 10)
        self.assertEqual(view.total_count, 12)
        self.assertEqual(view.total_pages, 2)
        self.assertFalse(view.loading)
        self.assertIsNone(view.error)
        self.assertEqual(view.items[0].category, Reference(1, 'Hardware'))

    async def test_second_page(self):
        self.seed(12)

        await self.controller.set_page(2)

        self.assertEqual([item.name for item in self.controller.view.items], ['Bolt 10', 'Bolt 11'])
        self.assertEqual(self.controller.view.page, 2)

    async def test_page_past_end_is_empty(self):
        self.seed(12)

        await self.controller.set_page(7)
        view = self.controller.view

        self.assertEqual(view.items, ())
        self.assertEqual(view.total_count, 12)
        self.assertEqual(view.page, 7)
        self.assertEqual(view.state, SyncState.READY)

    async def test_page_below_one_is_ignored(self):
        self.assertFalse(await self.controller.set_page(0))
        self.assertEqual(self.controller.query.page, 1)

    async def test_low_stock_boundary_end_to_end(self):
        self.tables.insert('category', {'name': 'Hardware'})
        for name, quantity in [('A', 5), ('B', 10), ('C', 11)]:
            self.tables.insert('stock', {'name': name, 'quantity': quantity, 'price': 1,
                                         'threshold': 10, 'category': 'Hardware'})

        await self.controller.load()

        statuses = {item.name: item.status for item in self.controller.view.items}
        self.assertEqual(statuses, {
            'A': StockStatus.LOW_STOCK,
            'B': StockStatus.LOW_STOCK,
            'C': StockStatus.IN_STOCK,
        })

    async def test_filters_reset_page(self):
        self.seed(12)
        await self.controller.set_page(2)

        await self.controller.set_filters(category='Paint')

        view = self.controller.view
        self.assertEqual(view.page, 1)
        self.assertEqual(view.total_count, 6)
        self.assertTrue(all(item.category.name == 'Paint' for item in view.items))

    async def test_read_failure_sets_error_state(self):
        self.seed(3)
        await self.controller.load()

        with patch.object(self.tables, 'select', side_effect=RemoteReadFailure('Database offline')):
            await self.controller.load()

        view = self.controller.view
        self.assertEqual(view.state, SyncState.ERROR)
        self.assertEqual(view.error, 'Database offline')
        self.assertFalse(view.loading)

    async def test_partial_catalog_failure(self):
        """Stock still loads when only the warehouse list fails."""
        self.seed(3)
        real_select = self.tables.select

        def flaky_select(table_name, *args, **kwargs):
            if table_name == 'warehouse':
                raise RemoteReadFailure('warehouse table unavailable')
            return real_select(table_name, *args, **kwargs)

        with patch.object(self.tables, 'select', side_effect=flaky_select):
            await self.controller.load()

        view = self.controller.view
        self.assertEqual(view.state, SyncState.READY)
        self.assertEqual(view.error, 'warehouse table unavailable')
        self.assertEqual(len(view.items), 3)
        self.assertEqual(view.items[0].category.name, 'Hardware')
        self.assertIsNotNone(view.items[0].category.id)
        self.assertEqual(view.items[0].warehouse, Reference(None, 'North'))

    async def test_error_survives_until_dismissed(self):
        with patch.object(self.tables, 'select', side_effect=RemoteReadFailure('Database offline')):
            await self.controller.load()

        await self.controller.load()
        self.assertEqual(self.controller.view.error, 'Database offline')

        self.controller.dismiss_error()
        self.assertIsNone(self.controller.view.error)

    async def test_stale_response_is_dropped(self):
        controller = SyncController(SlowPageTables(), self.storage, page_size=10, debounce_seconds=DEBOUNCE)

        slow = asyncio.create_task(controller.set_page(2))
        await asyncio.sleep(0.05)
        fast_applied = await controller.set_page(3)

        self.assertTrue(fast_applied)
        self.assertTrue(controller.view.loading)

        slow_applied = await slow

        self.assertFalse(slow_applied)
        self.assertEqual(controller.view.page, 3)
        self.assertEqual(controller.view.items[0].id, 20)
        self.assertFalse(controller.view.loading)

    async def test_stale_load_leaves_catalog_and_error_alone(self):
        tables = ChangingCatalogTables()
        controller = SyncController(tables, self.storage, page_size=10, debounce_seconds=DEBOUNCE)

        slow = asyncio.create_task(controller.set_page(2))
        await asyncio.sleep(0.05)
        await controller.set_page(3)
        self.assertFalse(await slow)

        self.assertEqual(tables.category_reads, 2)
        self.assertEqual(controller.catalog.list(ReferenceKind.CATEGORY), [Reference(1, 'New Name')])
        self.assertIsNone(controller.view.error)
        self.assertEqual(controller.view.items[0].id, 20)


class TestSearch(ControllerTestCase):
    """Test cases for debounced search."""

    async def test_keystrokes_collapse_into_one_fetch(self):
        self.controller.load = AsyncMock(return_value=True)

        for term in ['B', 'Bo', 'Bol', 'Bolt', 'Bolt 0']:
            self.controller.set_search(term)
            await asyncio.sleep(DEBOUNCE / 5)

        self.assertEqual(self.controller.load.call_count, 0)

        await asyncio.sleep(DEBOUNCE * 2)
        await self.controller.wait_idle()

        self.assertEqual(self.controller.load.call_count, 1)
        self.assertEqual(self.controller.query.search_term, 'Bolt 0')

    async def test_search_fetches_after_quiet_period(self):
        self.seed(12)
        await self.controller.set_page(2)

        self.controller.set_search('bolt 1')
        self.assertEqual(self.controller.query.page, 1)

        await asyncio.sleep(DEBOUNCE * 2)
        await self.controller.wait_idle()

        names = [item.name for item in self.controller.view.items]
        self.assertEqual(names, ['Bolt 10', 'Bolt 11'])
        self.assertEqual(self.controller.view.total_count, 2)

    async def test_filter_change_cancels_pending_search(self):
        self.controller.load = AsyncMock(return_value=True)

        self.controller.set_search('Bolt')
        await self.controller.set_filters(warehouse='North')
        await asyncio.sleep(DEBOUNCE * 2)
        await self.controller.wait_idle()

        self.assertEqual(self.controller.load.call_count, 1)
        self.assertEqual(self.controller.query.search_term, 'Bolt')
        self.assertEqual(self.controller.query.warehouse_filter, 'North')


class TestMutations(ControllerTestCase):
    """Test cases for create, update, delete and reference additions."""

    async def test_create_resolves_reference_names(self):
        await self.controller.load()
        category = await self.controller.add_category('Hardware')
        warehouse = await self.controller.add_warehouse('North')

        form = StockForm(name='Hammer', quantity='4', price='85000', threshold='5',
                         category_id=str(category.id), warehouse_id=warehouse.id)
        created = await self.controller.submit_create(form)

        self.assertIsNotNone(created)
        self.assertEqual(created.category, category)
        self.assertEqual(created.status, StockStatus.LOW_STOCK)

        rows, _ = self.tables.select('stock')
        self.assertEqual(rows[0]['category'], 'Hardware')
        self.assertEqual(rows[0]['warehouse'], 'North')
        self.assertEqual(rows[0]['quantity'], 4)
        self.assertEqual(self.controller.view.total_count, 1)

    async def test_create_uploads_picked_image(self):
        await self.controller.load()

        form = StockForm(name='Tile')
        form.asset = await self.controller.prepare_asset('tile.png', encode(noise_image(800, 600)))
        self.assertIsNotNone(form.asset.compressed)

        created = await self.controller.submit_create(form)

        self.assertTrue(created.thumbnail.startswith('http://cdn.test/thumbs/'))
        self.assertTrue(created.thumbnail.endswith('.png'))
        self.assertIsNone(form.asset)
        self.assertEqual(self.controller.view.items[0].thumbnail, created.thumbnail)

    async def test_unsupported_image(self):
        asset = await self.controller.prepare_asset('scan.bmp', b'BM' + b'\x00' * 64, 'image/bmp')

        self.assertIsNone(asset)
        self.assertEqual(
            self.controller.view.error,
            'Unsupported file format. Please upload a JPG, JPEG, PNG, or GIF.'
        )

    async def test_image_with_too_many_pixels(self):
        with patch.object(Image, 'MAX_IMAGE_PIXELS', 10000):
            asset = await self.controller.prepare_asset('huge.png', encode(noise_image(300, 200)), 'image/png')

        self.assertIsNone(asset)
        self.assertIn('too many pixels', self.controller.view.error)

    async def test_blank_name_is_rejected_before_write(self):
        await self.controller.load()

        with patch.object(self.tables, 'insert') as insert:
            created = await self.controller.submit_create(StockForm(name='   '))

        self.assertIsNone(created)
        insert.assert_not_called()
        self.assertEqual(self.controller.view.error, 'Item name is required')

    async def test_failed_write_leaves_list_untouched(self):
        self.seed(3)
        await self.controller.load()
        before = self.controller.view

        with patch.object(self.tables, 'insert', side_effect=RemoteWriteFailure('insert refused')):
            created = await self.controller.submit_create(StockForm(name='Hammer'))

        view = self.controller.view
        self.assertIsNone(created)
        self.assertEqual(view.items, before.items)
        self.assertEqual(view.total_count, before.total_count)
        self.assertEqual(view.state, SyncState.READY)
        self.assertEqual(view.error, 'insert refused')

    async def test_update_and_delete(self):
        self.seed(3)
        await self.controller.load()
        item = self.controller.view.items[0]

        form = StockForm.from_item(item)
        form.quantity = '25'
        self.assertTrue(await self.controller.submit_update(item.id, form))

        updated = self.controller.view.items[0]
        self.assertEqual(updated.quantity, 25)
        self.assertEqual(updated.status, StockStatus.IN_STOCK)
        self.assertEqual(updated.category, item.category)

        self.assertTrue(await self.controller.submit_delete(item.id))
        self.assertEqual(self.controller.view.total_count, 2)

    async def test_update_without_image_keeps_thumbnail(self):
        row = self.tables.insert('stock', {'name': 'Nail', 'thumbnail': 'http://cdn.test/thumbs/a.jpg'})
        await self.controller.load()

        self.assertTrue(await self.controller.submit_update(row['id'], StockForm(name='Nail', quantity='4')))

        rows, _ = self.tables.select('stock')
        self.assertEqual(rows[0]['thumbnail'], 'http://cdn.test/thumbs/a.jpg')
        self.assertEqual(rows[0]['quantity'], 4)
        self.assertEqual(self.controller.view.items[0].thumbnail, 'http://cdn.test/thumbs/a.jpg')

    async def test_duplicate_category(self):
        await self.controller.load()
        first = await self.controller.add_category('Tools')

        second = await self.controller.add_category('Tools')

        self.assertIsNotNone(first)
        self.assertIsNone(second)
        self.assertIsNotNone(self.controller.view.error)
        self.assertEqual(len(self.controller.catalog.list(ReferenceKind.CATEGORY)), 1)


class TestSubscribe(ControllerTestCase):
    async def test_listeners_get_each_view(self):
        views = []
        unsubscribe = self.controller.subscribe(views.append)

        await self.controller.load()

        self.assertTrue(views[0].loading)
        self.assertEqual(views[-1].state, SyncState.READY)
        self.assertFalse(views[-1].loading)

        seen = len(views)
        unsubscribe()
        await self.controller.load()
        self.assertEqual(len(views), seen)


if __name__ == '__main__':
    unittest.main()
