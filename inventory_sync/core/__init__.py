from .query_builder import (
    QueryState, FilterPredicate, OrderSpec, RangeSpec, StockQuery,
    build_query, page_window, total_pages
)
from .reconciler import enrich, to_storage_row, parse_number
from .image_compressor import ImageCompressor, target_dimension, scaled_size

__all__ = [
    'QueryState',
    'FilterPredicate',
    'OrderSpec',
    'RangeSpec',
    'StockQuery',
    'build_query',
    'page_window',
    'total_pages',
    'enrich',
    'to_storage_row',
    'parse_number',
    'ImageCompressor',
    'target_dimension',
    'scaled_size'
]
