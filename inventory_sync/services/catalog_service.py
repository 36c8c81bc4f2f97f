# inventory_sync/services/catalog_service.py
from typing import Dict, Iterable, List, Tuple

from inventory_sync.core.query_builder import NAME_ORDER
from inventory_sync.db.interface import TableInterface
from inventory_sync.exceptions import InventorySyncError, ValidationError
from inventory_sync.logging_setup import get_logger
from inventory_sync.models import Reference, ReferenceKind, NULL_REFERENCE

logger = get_logger('catalog')


def _by_name(entries: Iterable[Reference]) -> Tuple[Reference, ...]:
    return tuple(sorted(entries, key=lambda entry: entry.name or ''))


class CatalogSnapshot:
    """Immutable view of the categories and warehouses at one point in time."""

    def __init__(self, categories: Iterable[Reference] = (), warehouses: Iterable[Reference] = ()):
        self._entries = {
            ReferenceKind.CATEGORY: _by_name(categories),
            ReferenceKind.WAREHOUSE: _by_name(warehouses),
        }

    def list(self, kind: ReferenceKind) -> List[Reference]:
        return list(self._entries[kind])

    def resolve_by_id(self, kind: ReferenceKind, id_value) -> Reference:
        """Find an entry by id.

        Ids compare by string form, so form input "3" matches id 3.

        Returns:
            The entry, or the null identity when nothing matches
        """
        if id_value is None or id_value == '':
            return NULL_REFERENCE

        wanted = str(id_value)
        for entry in self._entries[kind]:
            if str(entry.id) == wanted:
                return entry
        return NULL_REFERENCE

    def resolve_by_name(self, kind: ReferenceKind, name) -> Reference:
        """Find an entry by name.

        Returns:
            The entry, or a synthetic reference with a null id carrying name
        """
        for entry in self._entries[kind]:
            if entry.name == name:
                return entry
        return Reference(None, name)

    def replace(self, kind: ReferenceKind, entries: Iterable[Reference]) -> 'CatalogSnapshot':
        """New snapshot with one kind's entries swapped out."""
        updated = dict(self._entries)
        updated[kind] = entries
        return CatalogSnapshot(updated[ReferenceKind.CATEGORY], updated[ReferenceKind.WAREHOUSE])


class ReferenceCatalog:
    """Categories and warehouses as last loaded from the remote tables."""

    def __init__(self, tables: TableInterface):
        """Initialize the catalog.

        Args:
            tables: Table interface for the category and warehouse tables
        """
        self.tables = tables
        self._snapshot = CatalogSnapshot()

    def snapshot(self) -> CatalogSnapshot:
        return self._snapshot

    def list(self, kind: ReferenceKind) -> List[Reference]:
        """All entries of a kind, ordered by name."""
        return self._snapshot.list(kind)

    def resolve_by_id(self, kind: ReferenceKind, id_value) -> Reference:
        return self._snapshot.resolve_by_id(kind, id_value)

    def resolve_by_name(self, kind: ReferenceKind, name) -> Reference:
        return self._snapshot.resolve_by_name(kind, name)

    def _fetch(self, kind: ReferenceKind) -> List[Reference]:
        rows, _ = self.tables.select(kind.value, order=NAME_ORDER)
        entries = [Reference(row.get('id'), row.get('name')) for row in rows]
        logger.info(f"Loaded {len(entries)} {kind.value} entries")
        return entries

    def refresh(self, kind: ReferenceKind) -> List[Reference]:
        """Reload every entry of a kind from the remote table.

        Raises:
            RemoteReadFailure: The read failed; the previous entries stay
        """
        self._snapshot = self._snapshot.replace(kind, self._fetch(kind))
        return self.list(kind)

    def fetch_all(self) -> Tuple[CatalogSnapshot, Dict[ReferenceKind, InventorySyncError]]:
        """Read categories then warehouses into a new snapshot without installing it.

        A failure on one kind does not stop the other; the failed kind keeps
        the entries of the current snapshot.

        Returns:
            Tuple of (new snapshot, errors keyed by kind)
        """
        snapshot = self._snapshot
        errors = {}
        for kind in (ReferenceKind.CATEGORY, ReferenceKind.WAREHOUSE):
            try:
                snapshot = snapshot.replace(kind, self._fetch(kind))
            except InventorySyncError as e:
                logger.error(f"Error fetching {kind.value} entries: {str(e)}")
                errors[kind] = e

        return snapshot, errors

    def install(self, snapshot: CatalogSnapshot):
        """Make snapshot the catalog's current view."""
        self._snapshot = snapshot

    def refresh_all(self) -> Tuple[CatalogSnapshot, Dict[ReferenceKind, InventorySyncError]]:
        """Reload categories then warehouses and install the result.

        Returns:
            Tuple of (resulting snapshot, errors keyed by kind)
        """
        snapshot, errors = self.fetch_all()
        self.install(snapshot)
        return snapshot, errors

    def append(self, kind: ReferenceKind, name: str) -> Reference:
        """Create a new entry.

        Args:
            kind: Category or warehouse
            name: Display name, must be unique

        Returns:
            The created entry with its server-assigned id

        Raises:
            ValidationError: Blank name
            DuplicateNameRejected: The store already has that name
            RemoteWriteFailure: Any other write failure
        """
        name = (name or '').strip()
        if not name:
            raise ValidationError(f"{kind.value.capitalize()} name is required", details={'name': 'required'})

        row = self.tables.insert(kind.value, {'name': name})
        entry = Reference(row.get('id'), row.get('name', name))

        self._snapshot = self._snapshot.replace(kind, self._snapshot.list(kind) + [entry])
        logger.info(f"Added {kind.value} '{entry.name}' (id={entry.id})")
        return entry
