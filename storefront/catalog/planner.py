"""Query planning.

Combines a predicate with sort, pagination and projection into a single
``QueryPlan`` value handed to the store adapter. Call sites pick their own
defaults through ``PlanDefaults``.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Self

from storefront.catalog.filters import MATCH_ALL, Predicate
from storefront.catalog.records import normalize_field
from storefront.domain.exceptions import ValidationFailedError


class SortOrder(str, Enum):
    """Sort direction."""

    ASC = "asc"
    DESC = "desc"

    @classmethod
    def parse(cls, value: "str | int | SortOrder") -> "SortOrder":
        """Parse a caller-supplied order.

        Accepts ``asc``/``desc``, ``ascending``/``descending`` and ``1``/``-1``.

        Raises:
            ValidationFailedError: If the value is not a known direction.
        """
        if isinstance(value, SortOrder):
            return value
        text = str(value).strip().lower()
        if text in ("asc", "ascending", "1"):
            return cls.ASC
        if text in ("desc", "descending", "-1"):
            return cls.DESC
        raise ValidationFailedError(f"Invalid sort order: {value}", fields=["order"])


class Projection(str, Enum):
    """Which fields a query returns."""

    ALL = "all"
    WITHOUT_ASSET = "without_asset"


@dataclass(frozen=True)
class PlanDefaults:
    """Defaults applied when a caller leaves a parameter unset.

    Attributes:
        sort_by: Default sort field.
        order: Default sort direction.
        limit: Default page size; None means unlimited.
    """

    sort_by: str | None = "id"
    order: SortOrder = SortOrder.ASC
    limit: int | None = None

    @classmethod
    def of(cls, sort_by: str | None, order: str, limit: int | None) -> Self:
        """Build defaults from raw settings values."""
        return cls(sort_by=sort_by, order=SortOrder.parse(order), limit=limit)


@dataclass(frozen=True)
class QueryPlan:
    """Everything a store needs to run one retrieval.

    Ties on the sort key come back in whatever order the store yields.

    Attributes:
        predicate: Records to select.
        sort_by: Field to sort by, or None for store order.
        order: Sort direction.
        skip: Number of records to skip.
        limit: Maximum records to return, or None for all.
        projection: Whether the image payload is loaded.
    """

    predicate: Predicate = MATCH_ALL
    sort_by: str | None = None
    order: SortOrder = SortOrder.ASC
    skip: int = 0
    limit: int | None = None
    projection: Projection = Projection.WITHOUT_ASSET


def plan_query(
    predicate: Predicate | None = None,
    *,
    defaults: PlanDefaults = PlanDefaults(),
    sort_by: str | None = None,
    order: "str | SortOrder | None" = None,
    limit: int | None = None,
    skip: int | None = None,
    projection: Projection = Projection.WITHOUT_ASSET,
) -> QueryPlan:
    """Build a query plan, filling unset parameters from ``defaults``.

    Args:
        predicate: Compiled filter, or None to match everything.
        defaults: Call-site defaults.
        sort_by: Sort field (legacy names accepted).
        order: Sort direction.
        limit: Page size. Zero means no limit.
        skip: Records to skip.
        projection: Field projection.

    Returns:
        Immutable query plan.

    Raises:
        ValidationFailedError: If limit or skip is negative, or the order is unknown.
    """
    if limit is not None and limit < 0:
        raise ValidationFailedError("limit must not be negative", fields=["limit"])
    if skip is not None and skip < 0:
        raise ValidationFailedError("skip must not be negative", fields=["skip"])

    resolved_sort = sort_by or defaults.sort_by
    resolved_limit = limit if limit is not None else defaults.limit

    return QueryPlan(
        predicate=predicate or MATCH_ALL,
        sort_by=normalize_field(resolved_sort) if resolved_sort else None,
        order=SortOrder.parse(order) if order else defaults.order,
        skip=skip or 0,
        limit=resolved_limit or None,
        projection=projection,
    )
