from __future__ import annotations

from gridcrud.schemas.query import Bounds, PageInfo, Pagination


def compute_page_info(total: int, bounds: Bounds | None) -> PageInfo | None:
    """Page-existence flags for page mode; range and unpaginated modes get none.

    ``page`` is 1-indexed and every page is assumed to hold ``per_page`` rows,
    so a last partial page still reports no next page.
    """
    if not isinstance(bounds, Pagination):
        return None
    if not bounds.enabled:
        return PageInfo(has_next_page=False, has_previous_page=False)
    return PageInfo(
        has_next_page=bounds.page * bounds.per_page < total,
        has_previous_page=bounds.page > 1,
    )
