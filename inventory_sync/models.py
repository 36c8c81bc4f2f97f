# inventory_sync/models.py
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
import enum

from sqlalchemy import Column, Integer, String, Float, DateTime, Index
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()

class ReferenceKind(enum.Enum):
    """Reference tables joined to stock rows by name.

    Values double as the remote table names.
    """
    CATEGORY = 'category'
    WAREHOUSE = 'warehouse'

    def __str__(self):
        return self.value

class StockStatus(enum.Enum):
    """Stock level status shown next to each item.

    Values:
        LOW_STOCK: quantity is at or below the item's threshold
        IN_STOCK: quantity is above the threshold
    """
    LOW_STOCK = 'Low Stock'
    IN_STOCK = 'In Stock'

    def __str__(self):
        """Return the display label."""
        return self.value

    @classmethod
    def for_levels(cls, quantity, threshold) -> 'StockStatus':
        """Classify a quantity against its reorder threshold.

        Equality counts as low stock.
        """
        if (quantity or 0) <= (threshold or 0):
            return cls.LOW_STOCK
        return cls.IN_STOCK

class Category(Base):
    __tablename__ = 'category'

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False, unique=True)
    created_at = Column(DateTime, server_default=func.now())

class Warehouse(Base):
    __tablename__ = 'warehouse'

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False, unique=True)
    created_at = Column(DateTime, server_default=func.now())

class Stock(Base):
    """Inventory row.

    category and warehouse hold display names, not foreign keys.
    """
    __tablename__ = 'stock'

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    quantity = Column(Integer, nullable=False, default=0)
    price = Column(Float, nullable=False, default=0.0)
    threshold = Column(Integer, nullable=False, default=10)
    category = Column(String(100))
    warehouse = Column(String(100))
    thumbnail = Column(String(500))
    created_at = Column(DateTime, server_default=func.now())

    __table_args__ = (
        Index('ix_stock_name', 'name'),
        Index('ix_stock_category', 'category'),
        Index('ix_stock_warehouse', 'warehouse'),
    )

TABLE_MODELS = {
    'stock': Stock,
    'category': Category,
    'warehouse': Warehouse,
}

# Columns a stock write may carry
STOCK_COLUMNS = ('id', 'name', 'quantity', 'price', 'threshold', 'category', 'warehouse', 'thumbnail')


@dataclass(frozen=True)
class Reference:
    """A resolved (or synthetic) category/warehouse reference.

    id is None when the name matched no live entry; both are None for the
    null identity.
    """
    id: Any = None
    name: Optional[str] = None

    @property
    def is_resolved(self) -> bool:
        return self.id is not None

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self.id, 'name': self.name}

NULL_REFERENCE = Reference()


@dataclass
class ImageAsset:
    """Encoded image bytes plus the metadata needed to store them."""
    filename: str
    data: bytes
    content_type: str
    width: Optional[int] = None
    height: Optional[int] = None

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def extension(self) -> str:
        """Extension of the original filename, without the dot."""
        if '.' not in self.filename:
            return ''
        return self.filename.rsplit('.', 1)[-1].lower()


@dataclass
class PendingAsset:
    """An image picked in an edit form and not yet uploaded."""
    original: ImageAsset
    compressed: Optional[ImageAsset] = None

    @property
    def upload_candidate(self) -> ImageAsset:
        return self.compressed if self.compressed is not None else self.original


@dataclass
class EnrichedStockItem:
    id: Any
    name: str
    quantity: float = 0
    price: float = 0
    threshold: float = 0
    thumbnail: Optional[str] = None
    category: Reference = NULL_REFERENCE
    warehouse: Reference = NULL_REFERENCE
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def category_id(self):
        return self.category.id

    @property
    def warehouse_id(self):
        return self.warehouse.id

    @property
    def status(self) -> StockStatus:
        return StockStatus.for_levels(self.quantity, self.threshold)

    @property
    def value(self) -> float:
        """Stock value (quantity times unit price)."""
        return (self.quantity or 0) * (self.price or 0)


@dataclass
class StockForm:
    """Edit-form state for a new or existing stock item.

    Numeric fields hold raw user input until the reconciler coerces them.
    """
    name: str = ''
    quantity: Any = 0
    price: Any = 0
    threshold: Any = 10
    category_id: Any = None
    warehouse_id: Any = None
    thumbnail: Optional[str] = None
    id: Any = None
    asset: Optional[PendingAsset] = None

    @classmethod
    def blank(cls, default_threshold: int = 10) -> 'StockForm':
        return cls(threshold=default_threshold)

    @classmethod
    def from_item(cls, item: EnrichedStockItem) -> 'StockForm':
        """Bind an enriched item to an edit form."""
        return cls(
            id=item.id,
            name=item.name,
            quantity=item.quantity,
            price=item.price,
            threshold=item.threshold,
            category_id=item.category_id,
            warehouse_id=item.warehouse_id,
            thumbnail=item.thumbnail,
        )
