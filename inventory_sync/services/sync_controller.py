# inventory_sync/services/sync_controller.py
"""Orchestration of catalog refresh, stock reads and mutations.

The controller runs on a single asyncio event loop. Blocking client calls are
pushed to worker threads with asyncio.to_thread. Every read is tagged with a
sequence number and a response older than the last applied one is dropped, so
overlapping page clicks cannot overwrite newer results.
"""
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, List, Optional, Tuple
import asyncio
import enum

from inventory_sync.config import config
from inventory_sync.core.query_builder import QueryState, STOCK_TABLE, build_query, total_pages
from inventory_sync.core.reconciler import enrich, to_storage_row
from inventory_sync.db.interface import TableInterface
from inventory_sync.db.storage import BlobStore
from inventory_sync.exceptions import InventorySyncError
from inventory_sync.logging_setup import logger as log_manager, get_logger, log_exception
from inventory_sync.models import EnrichedStockItem, Reference, ReferenceKind, StockForm, PendingAsset
from inventory_sync.services.asset_service import AssetService
from inventory_sync.services.catalog_service import ReferenceCatalog
from inventory_sync.utils.validation import ensure_valid_stock_form

logger = get_logger('sync')


class SyncState(enum.Enum):
    IDLE = 'idle'
    LOADING = 'loading'
    READY = 'ready'
    ERROR = 'error'


@dataclass(frozen=True)
class ViewModel:
    """Read-only snapshot handed to the UI."""
    items: Tuple[EnrichedStockItem, ...] = ()
    total_count: int = 0
    page: int = 1
    total_pages: int = 0
    loading: bool = False
    error: Optional[str] = None
    state: SyncState = SyncState.IDLE
    query: QueryState = QueryState()


class SyncController:
    """Keeps the stock list in step with the remote tables."""

    def __init__(
        self,
        tables: TableInterface,
        storage: BlobStore,
        catalog: Optional[ReferenceCatalog] = None,
        assets: Optional[AssetService] = None,
        page_size: Optional[int] = None,
        debounce_seconds: Optional[float] = None,
        query: Optional[QueryState] = None
    ):
        """Initialize the controller.

        Args:
            tables: Table interface for stock, category and warehouse
            storage: Blob store for thumbnails
            catalog: Reference catalog; built over tables when omitted
            assets: Asset service; built over storage when omitted
            page_size: Rows per page; defaults to INVENTORY.page_size
            debounce_seconds: Search quiet period; defaults to INVENTORY.debounce_ms
            query: Initial query state; page_size is ignored when given
        """
        inventory_config = config.inventory_config

        self.tables = tables
        self.catalog = catalog or ReferenceCatalog(tables)
        self.assets = assets or AssetService(storage)
        self.debounce_seconds = (
            debounce_seconds if debounce_seconds is not None
            else inventory_config['debounce_ms'] / 1000.0
        )

        self._query = query or QueryState(page_size=page_size or inventory_config['page_size'])
        self._view = ViewModel(query=self._query)
        self._listeners: List[Callable[[ViewModel], Any]] = []

        self._debounce_handle: Optional[asyncio.TimerHandle] = None
        self._tasks = set()
        self._request_seq = 0
        self._applied_seq = 0
        self._in_flight = 0

    @property
    def view(self) -> ViewModel:
        return self._view

    @property
    def query(self) -> QueryState:
        return self._query

    def subscribe(self, callback: Callable[[ViewModel], Any]) -> Callable[[], None]:
        """Register a callback receiving every new view model.

        Returns:
            Callable that removes the callback
        """
        self._listeners.append(callback)

        def unsubscribe():
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _publish(self, **changes):
        self._view = replace(self._view, **changes)
        for listener in list(self._listeners):
            listener(self._view)

    def _capture(self, error: InventorySyncError, operation: str):
        log_exception('sync', error, f"Error during {operation}")
        self._publish(error=error.message)

    def dismiss_error(self):
        self._publish(error=None)

    # Reads

    async def load(self) -> bool:
        """Refresh the catalog, fetch the current page and publish it.

        Returns:
            True when this load's result was applied
        """
        self._request_seq += 1
        seq = self._request_seq
        state = self._query

        self._in_flight += 1
        self._publish(loading=True, state=SyncState.LOADING)
        log_info = log_manager.sync_start_log('load', f"seq={seq} {state}")

        snapshot, catalog_errors, failure = None, {}, None
        try:
            snapshot, catalog_errors = await asyncio.to_thread(self.catalog.fetch_all)

            stock_query = build_query(state)
            rows, total_count = await asyncio.to_thread(
                self.tables.select,
                STOCK_TABLE,
                stock_query.predicate,
                stock_query.order,
                stock_query.range
            )
        except InventorySyncError as e:
            failure = e
            log_exception('sync', e, 'Error fetching inventory')
        finally:
            self._in_flight -= 1

        if seq < self._applied_seq:
            logger.debug(f"Dropping load {seq}; {self._applied_seq} already applied")
            self._publish(loading=self._in_flight > 0)
            return False

        self._applied_seq = seq

        # Catalog results install only with the load they belong to
        if snapshot is not None:
            self.catalog.install(snapshot)
        for error in catalog_errors.values():
            self._publish(error=error.message)

        if failure is not None:
            log_manager.sync_end_log(log_info, success=False)
            self._publish(
                loading=self._in_flight > 0,
                state=SyncState.ERROR,
                error=failure.message
            )
            return False

        items = tuple(enrich(row, snapshot) for row in rows)

        log_manager.sync_end_log(log_info, result_info={'rows': len(items), 'total': total_count})
        self._publish(
            items=items,
            total_count=total_count,
            page=state.page,
            total_pages=total_pages(total_count, state.page_size),
            loading=self._in_flight > 0,
            state=SyncState.READY,
            query=state
        )
        return True

    def _spawn_load(self):
        task = asyncio.ensure_future(self.load())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _cancel_pending_search(self):
        if self._debounce_handle is not None:
            self._debounce_handle.cancel()
            self._debounce_handle = None

    def _fire_search(self):
        self._debounce_handle = None
        self._spawn_load()

    def set_search(self, search_term: str):
        """Update the search term and schedule a debounced refetch.

        Must be called from the event loop. The query state changes at once;
        the fetch runs after debounce_seconds without another keystroke.
        """
        self._query = self._query.with_search(search_term)
        self._publish(query=self._query)

        self._cancel_pending_search()
        loop = asyncio.get_running_loop()
        self._debounce_handle = loop.call_later(self.debounce_seconds, self._fire_search)

    async def set_filters(self, category: Optional[str] = None, warehouse: Optional[str] = None) -> bool:
        """Filter by category and/or warehouse name and reload from page 1."""
        self._cancel_pending_search()
        self._query = self._query.with_filters(category, warehouse)
        self._publish(query=self._query)
        return await self.load()

    async def set_page(self, page: int) -> bool:
        """Jump to a page. Pages below 1 are ignored."""
        if page < 1:
            logger.debug(f"Ignoring request for page {page}")
            return False

        self._cancel_pending_search()
        self._query = self._query.with_page(page)
        self._publish(query=self._query)
        return await self.load()

    async def wait_idle(self):
        """Wait for scheduled and running loads to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    def close(self):
        """Cancel the pending search refetch, if any."""
        self._cancel_pending_search()

    # Writes

    async def _storage_row(self, form: StockForm) -> Dict[str, Any]:
        ensure_valid_stock_form(form)
        row = to_storage_row(form, self.catalog.snapshot())
        row.pop('id', None)

        if form.asset is not None:
            row['thumbnail'] = await asyncio.to_thread(self.assets.upload, form.asset)

        return row

    async def submit_create(self, form: StockForm) -> Optional[EnrichedStockItem]:
        """Insert a stock item, then reload.

        Returns:
            The created item, or None when the write failed
        """
        log_info = log_manager.sync_start_log('create', form.name)
        try:
            row = await self._storage_row(form)
            created = await asyncio.to_thread(self.tables.insert, STOCK_TABLE, row)
        except InventorySyncError as e:
            log_manager.sync_end_log(log_info, success=False)
            self._capture(e, 'create')
            return None

        form.asset = None
        log_manager.sync_end_log(log_info, result_info={'id': created.get('id')})
        await self.load()
        return enrich(created, self.catalog.snapshot())

    async def submit_update(self, item_id, form: StockForm) -> bool:
        """Update a stock item, then reload.

        A form with neither a thumbnail nor a picked image leaves the stored
        thumbnail in place.
        """
        log_info = log_manager.sync_start_log('update', f"id={item_id}")
        try:
            row = await self._storage_row(form)
            if row.get('thumbnail') is None:
                row.pop('thumbnail', None)
            await asyncio.to_thread(self.tables.update, STOCK_TABLE, item_id, row)
        except InventorySyncError as e:
            log_manager.sync_end_log(log_info, success=False)
            self._capture(e, 'update')
            return False

        form.asset = None
        log_manager.sync_end_log(log_info)
        await self.load()
        return True

    async def submit_delete(self, item_id) -> bool:
        """Delete a stock item, then reload."""
        log_info = log_manager.sync_start_log('delete', f"id={item_id}")
        try:
            await asyncio.to_thread(self.tables.delete, STOCK_TABLE, item_id)
        except InventorySyncError as e:
            log_manager.sync_end_log(log_info, success=False)
            self._capture(e, 'delete')
            return False

        log_manager.sync_end_log(log_info)
        await self.load()
        return True

    async def _add_reference(self, kind: ReferenceKind, name: str) -> Optional[Reference]:
        try:
            entry = await asyncio.to_thread(self.catalog.append, kind, name)
        except InventorySyncError as e:
            self._capture(e, f"add {kind.value}")
            return None

        # Re-publish so option lists pick up the new entry
        self._publish()
        return entry

    async def add_category(self, name: str) -> Optional[Reference]:
        return await self._add_reference(ReferenceKind.CATEGORY, name)

    async def add_warehouse(self, name: str) -> Optional[Reference]:
        return await self._add_reference(ReferenceKind.WAREHOUSE, name)

    async def prepare_asset(
        self,
        filename: str,
        data: bytes,
        content_type: Optional[str] = None
    ) -> Optional[PendingAsset]:
        """Check and compress a picked image off the event loop.

        Returns:
            PendingAsset to attach to a form, or None on failure
        """
        try:
            return await asyncio.to_thread(self.assets.prepare, filename, data, content_type)
        except InventorySyncError as e:
            self._capture(e, 'image preparation')
            return None
