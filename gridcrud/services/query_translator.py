"""
Translation of raw data-grid query parameters into a store-ready plan.

The client sends three JSON-encoded query parameters::

    filter={"email": "a@b.c"}
    sort=["real_name", "ASC"]
    pagination=[2, 10]        # PAGINATION_MODE=page  -> [page, perPage]
    range=[20, 10]            # PAGINATION_MODE=range -> [start, length]

Each parameter is parsed on its own and any missing or malformed one aborts the
whole request with a ``ValidationError``; nothing falls back to a default. Field
names are checked against the resource schema before they get anywhere near SQL.
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from gridcrud.core.errors import ValidationError
from gridcrud.schemas.query import MAX_INT64, Bounds, Pagination, PaginationMode, QueryPlan, Range, SortClause
from gridcrud.services.resource_schema import ResourceSchema

SORT_DIRECTIONS = ("ASC", "DESC")


def _invalid(param: str, reason: str) -> ValidationError:
    return ValidationError(f'Некорректный параметр "{param}": {reason}', details={"parameter": param})


def _load_json(param: str, raw: str | None) -> Any:
    if raw is None or not str(raw).strip():
        raise _invalid(param, "параметр обязателен")
    try:
        return json.loads(raw)
    except (TypeError, ValueError):
        raise _invalid(param, "ожидается JSON")


def parse_filter(raw: str | None, schema: ResourceSchema) -> tuple[tuple[str, Any], ...]:
    data = _load_json("filter", raw)
    if not isinstance(data, dict):
        raise _invalid("filter", "ожидается JSON-объект")
    unknown = sorted(key for key in data if key not in schema.filterable)
    if unknown:
        raise ValidationError(
            "Неизвестные поля фильтра: " + ", ".join(unknown),
            details={"parameter": "filter", "fields": unknown},
        )
    return tuple((key, schema.coerce(key, value)) for key, value in sorted(data.items()))


def parse_sort(raw: str | None, schema: ResourceSchema) -> SortClause:
    data = _load_json("sort", raw)
    if not isinstance(data, list) or len(data) != 2:
        raise _invalid("sort", "ожидается массив [поле, направление]")
    field, direction = data
    if not isinstance(field, str) or not isinstance(direction, str):
        raise _invalid("sort", "поле и направление должны быть строками")
    if field not in schema.sortable:
        raise ValidationError(
            f'Сортировка по полю "{field}" недоступна',
            details={"parameter": "sort", "fields": [field]},
        )
    if direction not in SORT_DIRECTIONS:
        raise _invalid("sort", "направление должно быть ASC или DESC")
    return SortClause(field=field, dir=direction)


def _parse_int_pair(param: str, raw: str | None) -> tuple[int, int]:
    data = _load_json(param, raw)
    if not isinstance(data, list) or len(data) != 2:
        raise _invalid(param, "ожидается массив из двух целых чисел")
    if any(isinstance(item, bool) or not isinstance(item, int) for item in data):
        raise _invalid(param, "ожидается массив из двух целых чисел")
    return data[0], data[1]


def parse_pagination(raw: str | None) -> Pagination:
    page, per_page = _parse_int_pair("pagination", raw)
    try:
        return Pagination(page=page, per_page=per_page)
    except PydanticValidationError:
        raise _invalid("pagination", "номер страницы и размер должны быть в диапазоне 0..2^63-1")


def parse_range(raw: str | None) -> Range:
    start, length = _parse_int_pair("range", raw)
    try:
        return Range(start=start, length=length)
    except PydanticValidationError:
        raise _invalid("range", "начало должно быть в диапазоне 0..2^63-1, длина 1..2^63-1")


def bounds_to_window(bounds: Bounds | None) -> tuple[int | None, int | None]:
    if isinstance(bounds, Pagination):
        if not bounds.enabled:
            return None, None
        offset = (bounds.page - 1) * bounds.per_page
        if offset > MAX_INT64:
            raise _invalid("pagination", "смещение страницы превышает 2^63-1")
        return offset, bounds.per_page
    if isinstance(bounds, Range):
        return bounds.start, bounds.length
    return None, None


def translate(
    raw_filter: str | None,
    raw_sort: str | None,
    raw_bounds: str | None,
    *,
    schema: ResourceSchema,
    mode: PaginationMode,
) -> QueryPlan:
    predicate = parse_filter(raw_filter, schema)
    order = parse_sort(raw_sort, schema)
    if mode == "page":
        bounds: Bounds | None = parse_pagination(raw_bounds)
    elif mode == "range":
        bounds = parse_range(raw_bounds)
    else:
        bounds = None
    offset, limit = bounds_to_window(bounds)
    return QueryPlan(
        predicate=predicate,
        order=order,
        offset=offset,
        limit=limit,
        mode=mode,
        bounds=bounds,
    )
