from __future__ import annotations

from typing import Any, Callable

from fastapi import APIRouter, Depends, Query

from gridcrud.core.config import settings
from gridcrud.schemas.payloads import (
    BulkDeletePayload,
    BulkUpdatePayload,
    CreatePayload,
    DeletePayload,
    UpdatePayload,
)
from gridcrud.services.resource_service import ResourceService


class ListQueryParams:
    """Raw JSON-encoded grid parameters, validated later by the translator."""

    def __init__(
        self,
        filter_: str | None = Query(None, alias="filter", description='JSON object, e.g. {"email": "a@b.c"}'),
        sort: str | None = Query(None, description='JSON array [field, "ASC" | "DESC"]'),
        pagination: str | None = Query(None, description="JSON array [page, perPage] (page mode)"),
        range_: str | None = Query(None, alias="range", description="JSON array [start, length] (range mode)"),
    ):
        self.filter = filter_
        self.sort = sort
        self.pagination = pagination
        self.range = range_

    def bounds(self, mode: str) -> str | None:
        if mode == "range":
            return self.range
        if mode == "page":
            return self.pagination
        return None


def build_resource_router(get_service: Callable[..., ResourceService]) -> APIRouter:
    router = APIRouter()

    @router.get("")
    def get_list(params: ListQueryParams = Depends(), service: ResourceService = Depends(get_service)):
        result = service.get_list(params.filter, params.sort, params.bounds(settings.PAGINATION_MODE))
        body: dict[str, Any] = {"data": result.rows, "total": result.total}
        if result.page_info is not None:
            body["pageInfo"] = result.page_info.model_dump(by_alias=True)
        return body

    @router.get("/many")
    def get_many(ids: list[int] = Query(default=[]), service: ResourceService = Depends(get_service)):
        return {"data": service.get_many(ids)}

    @router.get("/reference/{target}/{target_id}")
    def get_many_reference(target: str, target_id: str, service: ResourceService = Depends(get_service)):
        result = service.get_many_reference(target, target_id)
        return {"data": result.rows, "total": result.total}

    @router.get("/{record_id}")
    def get_one(record_id: int, service: ResourceService = Depends(get_service)):
        return {"data": service.get_one(record_id)}

    @router.post("", status_code=201)
    def create(payload: CreatePayload, service: ResourceService = Depends(get_service)):
        return {"data": service.create(payload.data)}

    @router.put("/{record_id}")
    def update_one(record_id: int, payload: UpdatePayload, service: ResourceService = Depends(get_service)):
        return {"data": service.update_one(record_id, payload.data, payload.previous_data)}

    @router.put("")
    def update_many(payload: BulkUpdatePayload, service: ResourceService = Depends(get_service)):
        return {"data": service.update_many(payload.ids, payload.updates)}

    @router.delete("/{record_id}")
    def delete_one(record_id: int, payload: DeletePayload, service: ResourceService = Depends(get_service)):
        return {"data": service.delete_one(record_id, payload.previous_data)}

    @router.delete("")
    def delete_many(payload: BulkDeletePayload, service: ResourceService = Depends(get_service)):
        return {"data": service.delete_many(payload.ids)}

    return router
