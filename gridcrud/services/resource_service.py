from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from gridcrud.core.errors import OperationNotImplementedError, StoreError
from gridcrud.schemas.query import PageInfo, PaginationMode
from gridcrud.services.pagination import compute_page_info
from gridcrud.services.query_translator import translate
from gridcrud.services.resource_schema import ResourceSchema
from gridcrud.services.resource_store import SqlAlchemyResourceStore

logger = logging.getLogger(__name__)


@dataclass
class ListResult:
    rows: list[dict[str, Any]]
    total: int
    page_info: PageInfo | None = None


@dataclass
class HealthStatus:
    healthy: bool
    message: str


class ResourceService:
    def __init__(self, store: SqlAlchemyResourceStore, schema: ResourceSchema, mode: PaginationMode):
        self.store = store
        self.schema = schema
        self.mode = mode

    def health(self) -> HealthStatus:
        try:
            self.store.ping()
        except StoreError as exc:
            cause = exc.__cause__ or exc
            logger.warning("health check failed: %s", cause)
            return HealthStatus(healthy=False, message=str(cause))
        return HealthStatus(healthy=True, message="healthy")

    def get_list(self, raw_filter: str | None, raw_sort: str | None, raw_bounds: str | None) -> ListResult:
        plan = translate(raw_filter, raw_sort, raw_bounds, schema=self.schema, mode=self.mode)
        total = self.store.count(plan.predicate)
        rows = self.store.find(plan.predicate, plan.order, plan.offset, plan.limit)
        return ListResult(
            rows=[self.schema.to_dict(row) for row in rows],
            total=total,
            page_info=compute_page_info(total, plan.bounds),
        )

    def get_one(self, record_id: Any) -> dict[str, Any]:
        return self.schema.to_dict(self.store.get(self.schema.coerce_id(record_id)))

    def get_many(self, ids: Any) -> list[dict[str, Any]]:
        raise OperationNotImplementedError("getMany")

    def get_many_reference(self, target: str, target_id: Any) -> ListResult:
        raise OperationNotImplementedError("getManyReference")

    def create(self, payload: Any) -> dict[str, Any]:
        values = self.schema.sanitize_payload(payload, is_update=False)
        row = self.store.create(values)
        logger.info("created %s id=%s", self.schema.name, getattr(row, self.schema.id_field))
        return self.schema.to_dict(row)

    def update_one(self, record_id: Any, payload: Any, previous: Any) -> dict[str, Any]:
        record_id = self.schema.coerce_id(record_id)
        updates = self.schema.sanitize_payload(payload, is_update=True)
        precondition = self.schema.sanitize_snapshot(previous, record_id)
        row = self.store.update(record_id, precondition, updates)
        logger.info("updated %s id=%s fields=%s", self.schema.name, record_id, sorted(updates))
        return self.schema.to_dict(row)

    def update_many(self, raw_ids: Any, payload: Any) -> list[Any]:
        ids = self.schema.coerce_ids(raw_ids)
        updates = self.schema.sanitize_payload(payload, is_update=True)
        updated = self.store.update_many(ids, updates)
        logger.info("updated %s ids=%s fields=%s", self.schema.name, updated, sorted(updates))
        return updated

    def delete_one(self, record_id: Any, previous: Any) -> dict[str, Any]:
        record_id = self.schema.coerce_id(record_id)
        precondition = self.schema.sanitize_snapshot(previous, record_id)
        row = self.store.delete(record_id, precondition)
        logger.info("deleted %s id=%s", self.schema.name, record_id)
        return self.schema.to_dict(row)

    def delete_many(self, raw_ids: Any) -> list[Any]:
        ids = self.schema.coerce_ids(raw_ids)
        deleted = self.store.delete_many(ids)
        logger.info("deleted %s ids=%s", self.schema.name, deleted)
        return deleted
