"""Filter compilation.

Turns caller-supplied field constraints into a store-neutral ``Predicate``.
Both store adapters evaluate predicates natively, so everything here is a
pure function over data.

Example:
    predicate = compile_filters({"category": ["c1", "c2"], "price": [10, 20]})
    # category_id IN (c1, c2) AND price >= 10 AND price <= 20
"""

from collections.abc import Collection, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from storefront.catalog.records import normalize_field
from storefront.domain.exceptions import ValidationFailedError

RANGE_FIELD = "price"

# Text search sentinel meaning "any category".
ALL_CATEGORIES = "All"


class Operator(str, Enum):
    """Comparison operators understood by every store adapter."""

    EQ = "eq"
    NE = "ne"
    IN = "in"
    GTE = "gte"
    LTE = "lte"
    ICONTAINS = "icontains"


@dataclass(frozen=True)
class Condition:
    """Single field comparison."""

    field: str
    operator: Operator
    value: Any


@dataclass(frozen=True)
class Predicate:
    """Conjunction of conditions. An empty predicate matches every record."""

    conditions: tuple[Condition, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.conditions

    def and_(self, *conditions: Condition) -> "Predicate":
        """Return a new predicate with extra conditions ANDed in."""
        return Predicate(self.conditions + conditions)


MATCH_ALL = Predicate()


def compile_filters(filters: Mapping[str, Any] | None) -> Predicate:
    """Compile a field→constraint mapping into a predicate.

    ``price`` takes an inclusive ``[min, max]`` range; any other field takes
    a collection of acceptable values. Empty constraints are skipped. A
    reversed range is passed through and simply matches nothing.

    Args:
        filters: Field name to constraint.

    Returns:
        Compiled predicate.

    Raises:
        ValidationFailedError: If the price range is not two elements long.
    """
    conditions: list[Condition] = []

    for key, constraint in (filters or {}).items():
        if _is_empty(constraint):
            continue

        field_name = normalize_field(key)

        if field_name == RANGE_FIELD:
            if isinstance(constraint, (str, bytes)) or not isinstance(constraint, Collection):
                raise ValidationFailedError(
                    "Price filter must be a [min, max] range", fields=[RANGE_FIELD]
                )
            bounds = list(constraint)
            if len(bounds) != 2:
                raise ValidationFailedError(
                    "Price filter must be a [min, max] range", fields=[RANGE_FIELD]
                )
            conditions.append(Condition(field_name, Operator.GTE, bounds[0]))
            conditions.append(Condition(field_name, Operator.LTE, bounds[1]))
        elif isinstance(constraint, (str, bytes)) or not isinstance(constraint, Collection):
            conditions.append(Condition(field_name, Operator.IN, (constraint,)))
        else:
            conditions.append(Condition(field_name, Operator.IN, tuple(constraint)))

    return Predicate(tuple(conditions))


def related_predicate(product_id: str, category_id: str) -> Predicate:
    """Records in the same category, excluding the given product."""
    return Predicate(
        (
            Condition("category_id", Operator.EQ, category_id),
            Condition("id", Operator.NE, product_id),
        )
    )


def text_search_predicate(name: str, category: str | None = None) -> Predicate:
    """Case-insensitive substring match on name, optionally scoped to a category.

    Args:
        name: Substring to look for. Matched literally, not as a pattern.
        category: Category ID, or ``"All"``/``None`` for no category constraint.

    Returns:
        Compiled predicate.
    """
    conditions = [Condition("name", Operator.ICONTAINS, name)]
    if category and category != ALL_CATEGORIES:
        conditions.append(Condition("category_id", Operator.EQ, category))
    return Predicate(tuple(conditions))


def _is_empty(constraint: Any) -> bool:
    if constraint is None:
        return True
    if isinstance(constraint, (str, bytes)):
        return len(constraint) == 0
    if isinstance(constraint, Collection):
        return len(constraint) == 0
    return False
