# inventory_sync/db/interface.py
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Dict, Any, Optional, List, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from inventory_sync.core.query_builder import FilterPredicate, OrderSpec, RangeSpec, like_pattern
from inventory_sync.exceptions import (
    ConfigError, RemoteReadFailure, RemoteWriteFailure, DuplicateNameRejected
)
from inventory_sync.logging_setup import get_logger
from inventory_sync.models import TABLE_MODELS

logger = get_logger('db')

# PostgREST / PostgreSQL error codes
UNIQUE_VIOLATION = '23505'
RANGE_NOT_SATISFIABLE = 'PGRST103'


class TableInterface(ABC):
    """CRUD access to the stock, category and warehouse tables."""

    @abstractmethod
    def select(
        self,
        table_name: str,
        predicate: Optional[FilterPredicate] = None,
        order: Optional[OrderSpec] = None,
        range_: Optional[RangeSpec] = None
    ) -> Tuple[List[Dict[str, Any]], int]:
        """Read rows matching predicate.

        Returns:
            Tuple of (rows in the window, total rows matching the predicate)
        """
        pass

    @abstractmethod
    def insert(self, table_name: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a row and return it as stored."""
        pass

    @abstractmethod
    def update(self, table_name: str, row_id: Any, data: Dict[str, Any]) -> None:
        pass

    @abstractmethod
    def delete(self, table_name: str, row_id: Any) -> None:
        pass


def _error_code(error: Exception) -> Optional[str]:
    code = getattr(error, 'code', None)
    return str(code) if code is not None else None


def _error_message(error: Exception) -> str:
    return getattr(error, 'message', None) or str(error)


class SupabaseInterface(TableInterface):
    """Supabase (PostgREST) implementation."""

    def __init__(self, client):
        """Initialize with Supabase client."""
        self.client = client

    def _filtered(self, query, predicate: Optional[FilterPredicate]):
        if predicate is None:
            return query

        if predicate.name_contains:
            query = query.ilike('name', like_pattern(predicate.name_contains))

        for column, value in predicate.equals().items():
            query = query.eq(column, value)

        return query

    def count(self, table_name: str, predicate: Optional[FilterPredicate] = None) -> int:
        """Count rows matching predicate without fetching them."""
        try:
            query = self.client.table(table_name).select('*', count='exact', head=True)
            result = self._filtered(query, predicate).execute()
        except Exception as e:
            raise RemoteReadFailure(
                f"Supabase count error on {table_name}: {_error_message(e)}", code=_error_code(e)
            )
        return result.count or 0

    def select(self, table_name, predicate=None, order=None, range_=None):
        """Query a window of rows plus the exact filtered count."""
        logger.debug(f"Select {table_name} where {predicate} order {order} window {range_}")
        try:
            query = self._filtered(self.client.table(table_name).select('*', count='exact'), predicate)

            if order:
                query = query.order(order.column, desc=not order.ascending)
                if order.column != 'id':
                    # Tie-break so pages stay stable when names repeat
                    query = query.order('id')

            if range_:
                query = query.range(range_.start, range_.end)

            result = query.execute()
        except Exception as e:
            if _error_code(e) == RANGE_NOT_SATISFIABLE:
                logger.debug(f"Window {range_} past the end of {table_name}")
                return [], self.count(table_name, predicate)
            raise RemoteReadFailure(
                f"Supabase query error on {table_name}: {_error_message(e)}", code=_error_code(e)
            )

        rows = result.data or []
        total = result.count if result.count is not None else len(rows)
        return rows, total

    def insert(self, table_name, data):
        """Insert data into a table using Supabase."""
        try:
            result = self.client.table(table_name).insert(data).execute()
        except Exception as e:
            if _error_code(e) == UNIQUE_VIOLATION:
                raise DuplicateNameRejected(
                    f"{table_name} '{data.get('name')}' already exists",
                    code=UNIQUE_VIOLATION,
                    details={'table': table_name, 'name': data.get('name')}
                )
            raise RemoteWriteFailure(
                f"Supabase insert error on {table_name}: {_error_message(e)}", code=_error_code(e)
            )

        return result.data[0] if result.data else {}

    def update(self, table_name, row_id, data):
        """Update a row by id using Supabase."""
        try:
            result = self.client.table(table_name).update(data).eq('id', row_id).execute()
        except Exception as e:
            raise RemoteWriteFailure(
                f"Supabase update error on {table_name}: {_error_message(e)}", code=_error_code(e)
            )

        if not result.data:
            logger.warning(f"Update on {table_name} id={row_id} matched no rows")

    def delete(self, table_name, row_id):
        """Delete a row by id using Supabase."""
        try:
            self.client.table(table_name).delete().eq('id', row_id).execute()
        except Exception as e:
            raise RemoteWriteFailure(
                f"Supabase delete error on {table_name}: {_error_message(e)}", code=_error_code(e)
            )


def _is_unique_violation(error: IntegrityError) -> bool:
    if getattr(error.orig, 'pgcode', None) == UNIQUE_VIOLATION:
        return True
    return 'unique' in str(error.orig).lower()


class SQLAlchemyInterface(TableInterface):
    """Relational implementation over the declarative models."""

    def __init__(self, engine):
        self.engine = engine
        self._SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
            bind=engine
        )

    @contextmanager
    def session_scope(self):
        """Provide transaction scope for database operations."""
        session = self._SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def _model(self, table_name: str):
        try:
            return TABLE_MODELS[table_name]
        except KeyError:
            raise ConfigError(f"Unknown table: {table_name}")

    def _to_dict(self, instance) -> Dict[str, Any]:
        return {column.name: getattr(instance, column.name) for column in instance.__table__.columns}

    def _filtered(self, query, model, predicate: Optional[FilterPredicate]):
        if predicate is None:
            return query

        if predicate.name_contains:
            query = query.filter(model.name.ilike(like_pattern(predicate.name_contains), escape='\\'))

        for column, value in predicate.equals().items():
            query = query.filter(getattr(model, column) == value)

        return query

    def select(self, table_name, predicate=None, order=None, range_=None):
        model = self._model(table_name)
        logger.debug(f"Select {table_name} where {predicate} order {order} window {range_}")
        try:
            with self.session_scope() as session:
                query = self._filtered(session.query(model), model, predicate)
                total = query.count()

                if order:
                    column = getattr(model, order.column)
                    query = query.order_by(column.asc() if order.ascending else column.desc(), model.id.asc())

                if range_:
                    query = query.offset(range_.start).limit(range_.limit)

                rows = [self._to_dict(instance) for instance in query.all()]
        except SQLAlchemyError as e:
            raise RemoteReadFailure(f"Query error on {table_name}: {str(e)}")

        return rows, total

    def insert(self, table_name, data):
        model = self._model(table_name)
        columns = set(model.__table__.columns.keys())
        try:
            with self.session_scope() as session:
                instance = model(**{k: v for k, v in data.items() if k in columns})
                session.add(instance)
                session.flush()
                row = self._to_dict(instance)
        except IntegrityError as e:
            if _is_unique_violation(e):
                raise DuplicateNameRejected(
                    f"{table_name} '{data.get('name')}' already exists",
                    details={'table': table_name, 'name': data.get('name'), 'reason': str(e.orig)}
                )
            raise RemoteWriteFailure(f"Insert error on {table_name}: {str(e.orig)}")
        except SQLAlchemyError as e:
            raise RemoteWriteFailure(f"Insert error on {table_name}: {str(e)}")

        return row

    def update(self, table_name, row_id, data):
        model = self._model(table_name)
        columns = set(model.__table__.columns.keys())
        values = {k: v for k, v in data.items() if k in columns and k != 'id'}
        try:
            with self.session_scope() as session:
                matched = session.query(model).filter(model.id == row_id).update(values)
        except SQLAlchemyError as e:
            raise RemoteWriteFailure(f"Update error on {table_name}: {str(e)}")

        if not matched:
            logger.warning(f"Update on {table_name} id={row_id} matched no rows")

    def delete(self, table_name, row_id):
        model = self._model(table_name)
        try:
            with self.session_scope() as session:
                session.query(model).filter(model.id == row_id).delete()
        except SQLAlchemyError as e:
            raise RemoteWriteFailure(f"Delete error on {table_name}: {str(e)}")
