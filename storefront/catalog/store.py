"""Record store contract and in-memory adapter.

The store is a thin boundary with no business rules: it evaluates
predicates and query plans, and applies the mutations it is given.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, fields, replace
from datetime import datetime, timezone
from typing import Any

from storefront.catalog.filters import MATCH_ALL, Condition, Operator, Predicate
from storefront.catalog.planner import Projection, QueryPlan, SortOrder
from storefront.catalog.records import Category, Product
from storefront.domain.exceptions import (
    ProductNotFoundError,
    QueryFailedError,
    WriteFailedError,
)

# Fields a store may increment.
COUNTER_FIELDS = frozenset({"quantity", "sold"})

QUERYABLE_FIELDS = frozenset(f.name for f in fields(Product)) - {"image", "category"}


@dataclass(frozen=True)
class ConditionalUpdate:
    """One guarded mutation inside a bulk write.

    Attributes:
        predicate: Selects the record; applied only if it matches.
        increments: Field to signed delta.
    """

    predicate: Predicate
    increments: Mapping[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class BulkWriteResult:
    """Outcome of a bulk conditional update, one flag per submitted item."""

    matched: tuple[bool, ...] = ()

    @property
    def requested_count(self) -> int:
        return len(self.matched)

    @property
    def matched_count(self) -> int:
        return sum(1 for hit in self.matched if hit)

    @property
    def all_matched(self) -> bool:
        return all(self.matched)


class ProductStore(ABC):
    """Storage boundary for product records."""

    @abstractmethod
    async def insert(self, product: Product) -> str:
        """Persist a new product and return its ID."""

    @abstractmethod
    async def find_by_id(
        self,
        product_id: str,
        projection: Projection = Projection.WITHOUT_ASSET,
    ) -> Product | None:
        """Get a product by ID, or None if it does not exist."""

    @abstractmethod
    async def update(self, product_id: str, changes: Mapping[str, Any]) -> Product:
        """Overwrite the given fields and return the stored record without its image."""

    @abstractmethod
    async def delete(self, product_id: str) -> None:
        """Delete a product by ID."""

    @abstractmethod
    async def query(self, plan: QueryPlan) -> list[Product]:
        """Run a query plan."""

    @abstractmethod
    async def distinct(self, field_name: str, predicate: Predicate = MATCH_ALL) -> set[Any]:
        """Get the distinct values of a field over matching records."""

    @abstractmethod
    async def bulk_conditional_update(
        self,
        updates: Sequence[ConditionalUpdate],
    ) -> BulkWriteResult:
        """Apply many independent guarded increments in one call."""


# ============================================================================
# In-memory adapter
# ============================================================================


class InMemoryProductStore(ProductStore):
    """Process-local product store.

    Every operation completes without awaiting, so each one is atomic with
    respect to other coroutines on the same event loop.

    Example usage:
        store = InMemoryProductStore(
            products=[product],
            categories=[Category(id="c1", name="Books")],
        )
        service = CatalogService(store)
    """

    def __init__(
        self,
        products: Sequence[Product] = (),
        categories: Sequence[Category] = (),
    ) -> None:
        self._products: dict[str, Product] = {p.id: p for p in products}
        self._categories: dict[str, Category] = {c.id: c for c in categories}

    async def insert(self, product: Product) -> str:
        if product.id in self._products:
            raise WriteFailedError(f"Duplicate product id: {product.id}")
        self._products[product.id] = replace(product, category=None)
        return product.id

    async def find_by_id(
        self,
        product_id: str,
        projection: Projection = Projection.WITHOUT_ASSET,
    ) -> Product | None:
        product = self._products.get(product_id)
        if product is None:
            return None
        return self._present(product, projection)

    async def update(self, product_id: str, changes: Mapping[str, Any]) -> Product:
        current = self._products.get(product_id)
        if current is None:
            raise ProductNotFoundError(product_id)
        unknown = [name for name in changes if not hasattr(current, name)]
        if unknown:
            raise WriteFailedError(f"Unknown fields: {', '.join(unknown)}")

        updated = replace(current, **changes, updated_at=datetime.now(timezone.utc))
        self._products[product_id] = updated
        return self._present(updated, Projection.WITHOUT_ASSET)

    async def delete(self, product_id: str) -> None:
        if self._products.pop(product_id, None) is None:
            raise ProductNotFoundError(product_id)

    async def query(self, plan: QueryPlan) -> list[Product]:
        matches = [p for p in self._products.values() if self._matches(p, plan.predicate)]

        if plan.sort_by:
            matches = self._sorted(matches, plan.sort_by, plan.order)

        end = plan.skip + plan.limit if plan.limit is not None else None
        return [self._present(p, plan.projection) for p in matches[plan.skip:end]]

    async def distinct(self, field_name: str, predicate: Predicate = MATCH_ALL) -> set[Any]:
        return {
            self._read(p, field_name)
            for p in self._products.values()
            if self._matches(p, predicate)
        }

    async def bulk_conditional_update(
        self,
        updates: Sequence[ConditionalUpdate],
    ) -> BulkWriteResult:
        bad = {name for update in updates for name in update.increments} - COUNTER_FIELDS
        if bad:
            raise WriteFailedError(f"Cannot increment fields: {', '.join(sorted(bad))}")

        for update in updates:
            for condition in update.predicate.conditions:
                self._check_field(condition.field)

        now = datetime.now(timezone.utc)
        matched: list[bool] = []

        for update in updates:
            target = next(
                (p for p in self._products.values() if self._matches(p, update.predicate)),
                None,
            )
            if target is None:
                matched.append(False)
                continue

            changes = {
                name: getattr(target, name) + delta
                for name, delta in update.increments.items()
            }
            self._products[target.id] = replace(target, **changes, updated_at=now)
            matched.append(True)

        return BulkWriteResult(tuple(matched))

    def _present(self, product: Product, projection: Projection) -> Product:
        category = self._categories.get(product.category_id)
        image = product.image if projection is Projection.ALL else None
        return replace(product, image=image, category=category)

    def _matches(self, product: Product, predicate: Predicate) -> bool:
        return all(self._evaluate(product, c) for c in predicate.conditions)

    def _evaluate(self, product: Product, condition: Condition) -> bool:
        value = self._read(product, condition.field)
        expected = condition.value
        op = condition.operator

        try:
            if op is Operator.EQ:
                return value == expected
            if op is Operator.NE:
                return value != expected
            if op is Operator.IN:
                return value in expected
            if op is Operator.GTE:
                return value >= expected
            if op is Operator.LTE:
                return value <= expected
            if op is Operator.ICONTAINS:
                return str(expected).lower() in str(value).lower()
        except TypeError as exc:
            raise QueryFailedError(f"Cannot compare field '{condition.field}'", cause=exc) from exc

        raise QueryFailedError(f"Unsupported operator: {op}")

    def _sorted(self, products: list[Product], sort_by: str, order: SortOrder) -> list[Product]:
        self._check_field(sort_by)
        try:
            return sorted(
                products,
                key=lambda p: getattr(p, sort_by),
                reverse=order is SortOrder.DESC,
            )
        except TypeError as exc:
            raise QueryFailedError(f"Cannot sort by '{sort_by}'", cause=exc) from exc

    @staticmethod
    def _check_field(field_name: str) -> str:
        if field_name not in QUERYABLE_FIELDS:
            raise QueryFailedError(f"Unknown field: {field_name}")
        return field_name

    @classmethod
    def _read(cls, product: Product, field_name: str) -> Any:
        return getattr(product, cls._check_field(field_name))
