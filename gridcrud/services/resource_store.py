from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterable, Iterator, Sequence

from sqlalchemy import asc, delete, desc, func, select, text, update
from sqlalchemy.exc import DataError, IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from gridcrud.core.deadline import Deadline
from gridcrud.core.errors import (
    IntegrityViolationError,
    NotFoundError,
    OptimisticMismatchError,
    ResourceError,
    StoreError,
    StoreTimeoutError,
    ValidationError,
)
from gridcrud.schemas.query import SortClause
from gridcrud.services.resource_schema import ResourceSchema

logger = logging.getLogger(__name__)

Predicate = Iterable[tuple[str, Any]]

_PG_QUERY_CANCELED = "57014"


class SqlAlchemyResourceStore:
    """Executes query plans and writes for one resource inside one session.

    Rows come back in the requested order with the identifier appended as a
    final ascending tiebreaker, so offset/limit windows never overlap between
    pages. Conditional writes are single UPDATE/DELETE statements whose WHERE
    clause carries the caller's previous snapshot.
    """

    def __init__(self, db: Session, schema: ResourceSchema, deadline: Deadline | None = None):
        self.db = db
        self.schema = schema
        self.deadline = deadline or Deadline.unbounded()

    # -- plumbing -----------------------------------------------------------

    def _guard(self, operation: str) -> None:
        if self.deadline.expired:
            raise StoreTimeoutError(
                "Превышено время ожидания запроса к хранилищу",
                details={"operation": operation},
            )
        self._apply_statement_timeout()

    def _apply_statement_timeout(self) -> None:
        remaining_ms = self.deadline.remaining_ms()
        if remaining_ms is not None and self.db.get_bind().dialect.name == "postgresql":
            self.db.execute(text(f"SET LOCAL statement_timeout = {int(remaining_ms)}"))

    @contextmanager
    def _store_call(self, operation: str) -> Iterator[None]:
        try:
            self._guard(operation)
            yield
        except ResourceError:
            self.db.rollback()
            raise
        except IntegrityError as exc:
            self.db.rollback()
            raise IntegrityViolationError(
                "Нарушение ограничений данных",
                details={"operation": operation},
            ) from exc
        except (DataError, OverflowError) as exc:
            # value out of range for the column type
            self.db.rollback()
            raise ValidationError(
                "Значение вне допустимого диапазона для хранилища",
                details={"operation": operation},
            ) from exc
        except OperationalError as exc:
            self.db.rollback()
            if getattr(exc.orig, "sqlstate", None) == _PG_QUERY_CANCELED:
                raise StoreTimeoutError(
                    "Превышено время ожидания запроса к хранилищу",
                    details={"operation": operation},
                ) from exc
            logger.exception("store operation %s failed on %s", operation, self.schema.name)
            raise StoreError("Ошибка хранилища", details={"operation": operation}) from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("store operation %s failed on %s", operation, self.schema.name)
            raise StoreError("Ошибка хранилища", details={"operation": operation}) from exc

    def _where(self, predicate: Predicate) -> list[Any]:
        clauses = []
        for field_name, value in predicate:
            column = self.schema.attribute(field_name)
            clauses.append(column.is_(None) if value is None else column == value)
        return clauses

    def _order_by(self, order: SortClause | None) -> list[Any]:
        clauses = []
        if order is not None:
            column = self.schema.attribute(order.field)
            clauses.append(asc(column) if order.dir == "ASC" else desc(column))
        if order is None or order.field != self.schema.id_field:
            clauses.append(asc(self.schema.id_column))
        return clauses

    def _not_found(self, record_id: Any) -> NotFoundError:
        return NotFoundError("Запись не найдена", details={"id": record_id})

    def _raise_missing_or_mismatch(self, record_id: Any) -> None:
        exists = self.db.scalar(select(self.schema.id_column).where(self.schema.id_column == record_id))
        if exists is None:
            raise self._not_found(record_id)
        raise OptimisticMismatchError(
            "Запись была изменена другим пользователем",
            details={"id": record_id},
        )

    def _existing_ids(self, ids: Sequence[Any]) -> set[Any]:
        id_column = self.schema.id_column
        return set(self.db.scalars(select(id_column).where(id_column.in_(ids))).all())

    def _concurrently_removed(self, ids: Sequence[Any]) -> NotFoundError:
        return NotFoundError("Часть записей была удалена параллельно", details={"ids": list(ids)})

    def _require_all(self, ids: Sequence[Any]) -> None:
        existing = self._existing_ids(ids)
        missing = [record_id for record_id in ids if record_id not in existing]
        if missing:
            raise NotFoundError("Записи не найдены", details={"ids": missing})

    # -- reads --------------------------------------------------------------

    def ping(self) -> None:
        with self._store_call("ping"):
            self.db.execute(text("SELECT 1"))

    def count(self, predicate: Predicate) -> int:
        with self._store_call("count"):
            stmt = select(func.count()).select_from(self.schema.model).where(*self._where(predicate))
            return int(self.db.scalar(stmt) or 0)

    def find(
        self,
        predicate: Predicate,
        order: SortClause | None = None,
        offset: int | None = None,
        limit: int | None = None,
    ) -> list[Any]:
        with self._store_call("find"):
            stmt = select(self.schema.model).where(*self._where(predicate)).order_by(*self._order_by(order))
            if offset:
                stmt = stmt.offset(offset)
            if limit is not None:
                stmt = stmt.limit(limit)
            return list(self.db.scalars(stmt).all())

    def get(self, record_id: Any) -> Any:
        with self._store_call("get"):
            row = self.db.get(self.schema.model, record_id)
            if row is None:
                raise self._not_found(record_id)
            return row

    # -- writes -------------------------------------------------------------

    def create(self, values: dict[str, Any]) -> Any:
        with self._store_call("create"):
            row = self.schema.model(**values)
            self.db.add(row)
            self.db.commit()
            self._apply_statement_timeout()
            self.db.refresh(row)
            return row

    def update(self, record_id: Any, previous: dict[str, Any], updates: dict[str, Any]) -> Any:
        with self._store_call("update"):
            id_column = self.schema.id_column
            stmt = (
                update(self.schema.model)
                .where(id_column == record_id, *self._where(previous.items()))
                .values(**updates)
                .execution_options(synchronize_session=False)
            )
            result = self.db.execute(stmt)
            if result.rowcount == 0:
                self._raise_missing_or_mismatch(record_id)
            self.db.commit()
            # the re-read runs in a fresh transaction and needs its own timeout
            self._apply_statement_timeout()
            row = self.db.get(self.schema.model, record_id, populate_existing=True)
            if row is None:
                raise self._not_found(record_id)
            return row

    def delete(self, record_id: Any, previous: dict[str, Any]) -> Any:
        with self._store_call("delete"):
            row = self.db.get(self.schema.model, record_id)
            if row is None:
                raise self._not_found(record_id)
            self.db.expunge(row)
            stmt = (
                delete(self.schema.model)
                .where(self.schema.id_column == record_id, *self._where(previous.items()))
                .execution_options(synchronize_session=False)
            )
            result = self.db.execute(stmt)
            if result.rowcount == 0:
                self._raise_missing_or_mismatch(record_id)
            self.db.commit()
            return row

    def update_many(self, ids: Sequence[Any], updates: dict[str, Any]) -> list[Any]:
        """All-or-nothing: one UPDATE for every id, or nothing when any is missing."""
        with self._store_call("update_many"):
            self._require_all(ids)
            stmt = (
                update(self.schema.model)
                .where(self.schema.id_column.in_(ids))
                .values(**updates)
                .execution_options(synchronize_session=False)
            )
            result = self.db.execute(stmt)
            if result.rowcount != len(ids):
                raise self._concurrently_removed(ids)
            self.db.commit()
            return list(ids)

    def delete_many(self, ids: Sequence[Any]) -> list[Any]:
        """All-or-nothing: one DELETE for every id, or nothing when any is missing."""
        with self._store_call("delete_many"):
            self._require_all(ids)
            stmt = (
                delete(self.schema.model)
                .where(self.schema.id_column.in_(ids))
                .execution_options(synchronize_session=False)
            )
            result = self.db.execute(stmt)
            if result.rowcount != len(ids):
                raise self._concurrently_removed(ids)
            self.db.commit()
            return list(ids)
