from typing import Any, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

Dir = Literal["ASC", "DESC"]
PaginationMode = Literal["page", "range", "none"]

# Largest value a BIGINT column or an OFFSET/LIMIT clause accepts.
MAX_INT64 = 2**63 - 1
MIN_INT64 = -(2**63)


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class SortClause(_Frozen):
    field: str
    dir: Dir


class Pagination(_Frozen):
    kind: Literal["page"] = "page"
    page: int = Field(ge=0, le=MAX_INT64)
    per_page: int = Field(ge=0, le=MAX_INT64)

    @property
    def enabled(self) -> bool:
        # page=0 or perPage=0 means "return every matching row"
        return self.page > 0 and self.per_page > 0


class Range(_Frozen):
    kind: Literal["range"] = "range"
    start: int = Field(ge=0, le=MAX_INT64)
    length: int = Field(ge=1, le=MAX_INT64)


Bounds = Union[Pagination, Range]


class QueryPlan(_Frozen):
    predicate: Tuple[Tuple[str, Any], ...] = ()
    order: Optional[SortClause] = None
    offset: Optional[int] = None
    limit: Optional[int] = None
    mode: PaginationMode = "page"
    bounds: Optional[Bounds] = None


class PageInfo(_Frozen):
    model_config = ConfigDict(populate_by_name=True)

    has_next_page: bool = Field(alias="hasNextPage")
    has_previous_page: bool = Field(alias="hasPreviousPage")
