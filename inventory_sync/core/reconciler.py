# inventory_sync/core/reconciler.py
"""Conversion between stored stock rows and in-memory items.

Stock rows reference categories and warehouses by display name. Reading a row
resolves those names against a catalog snapshot; writing a form resolves the
selected ids back to names.
"""
from typing import Any, Dict, Mapping
import math

from inventory_sync.models import (
    EnrichedStockItem, Reference, ReferenceKind, NULL_REFERENCE, STOCK_COLUMNS
)

NUMERIC_FIELDS = ('quantity', 'price', 'threshold')


def parse_number(value: Any) -> float:
    """Coerce form input to a non-negative number.

    Non-numeric, non-finite and negative input all become 0. Integral values
    come back as int so they serialize without a fractional part.
    """
    if isinstance(value, bool):
        return 0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0

    if not math.isfinite(number) or number < 0:
        return 0

    if number.is_integer():
        return int(number)
    return number


def _resolve_name(catalog, kind: ReferenceKind, name) -> Reference:
    if name is None or name == '':
        return NULL_REFERENCE
    return catalog.resolve_by_name(kind, name)


def enrich(row: Mapping[str, Any], catalog) -> EnrichedStockItem:
    """Build an enriched item from a stored stock row.

    Args:
        row: Stock row as returned by the table interface
        catalog: Object exposing resolve_by_name(kind, name)

    Returns:
        EnrichedStockItem; unmatched names keep their text with a null id
    """
    extra = {k: v for k, v in row.items() if k not in STOCK_COLUMNS}

    return EnrichedStockItem(
        id=row.get('id'),
        name=row.get('name'),
        quantity=row.get('quantity'),
        price=row.get('price'),
        threshold=row.get('threshold'),
        thumbnail=row.get('thumbnail'),
        category=_resolve_name(catalog, ReferenceKind.CATEGORY, row.get('category')),
        warehouse=_resolve_name(catalog, ReferenceKind.WAREHOUSE, row.get('warehouse')),
        extra=extra
    )


def to_storage_row(form, catalog) -> Dict[str, Any]:
    """Build a storage-safe stock row from an edit form.

    Args:
        form: StockForm or EnrichedStockItem
        catalog: Object exposing resolve_by_id(kind, id)

    Returns:
        Row dictionary. category/warehouse are written only when the selected
        id resolves; an unresolved id leaves the key out entirely. A stored
        row whose category or warehouse is None therefore comes back without
        that key, and an update leaves the stored column as it was.
    """
    row = {'name': form.name}

    if getattr(form, 'id', None) is not None:
        row['id'] = form.id

    for field_name in NUMERIC_FIELDS:
        row[field_name] = parse_number(getattr(form, field_name, 0))

    row['thumbnail'] = getattr(form, 'thumbnail', None)

    for kind, id_value in (
        (ReferenceKind.CATEGORY, form.category_id),
        (ReferenceKind.WAREHOUSE, form.warehouse_id),
    ):
        if id_value is None or id_value == '':
            continue
        reference = catalog.resolve_by_id(kind, id_value)
        if reference.is_resolved:
            row[kind.value] = reference.name

    return row
