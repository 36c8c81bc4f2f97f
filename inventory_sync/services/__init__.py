from .catalog_service import ReferenceCatalog, CatalogSnapshot
from .asset_service import AssetService
from .sync_controller import SyncController, SyncState, ViewModel

__all__ = [
    'ReferenceCatalog',
    'CatalogSnapshot',
    'AssetService',
    'SyncController',
    'SyncState',
    'ViewModel'
]
