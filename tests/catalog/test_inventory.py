"""Tests for inventory adjustment."""

import asyncio

import pytest

from storefront.catalog.filters import Condition, Operator
from storefront.catalog.inventory import InventoryAdjuster, LineItem
from storefront.catalog.store import BulkWriteResult, InMemoryProductStore
from storefront.domain.exceptions import (
    InventoryAdjustmentFailedError,
    ValidationFailedError,
    WriteFailedError,
)

from tests.factories import make_product


@pytest.fixture
def inventory_store() -> InMemoryProductStore:
    """p1 has plenty of stock, p2 has one unit left."""
    return InMemoryProductStore(
        products=[
            make_product("p1", quantity=10, sold=5),
            make_product("p2", quantity=1, sold=0),
        ]
    )


async def stock(store: InMemoryProductStore, product_id: str) -> tuple[int, int]:
    product = await store.find_by_id(product_id)
    assert product is not None
    return product.quantity, product.sold


class FailingStore(InMemoryProductStore):
    """Store whose bulk write always fails."""

    async def bulk_conditional_update(self, updates):  # type: ignore[override]
        raise WriteFailedError("connection reset")


class TestBuildUpdates:
    """Tests for building conditional updates."""

    def test_guarded_by_default(self, inventory_store: InMemoryProductStore) -> None:
        updates = InventoryAdjuster(inventory_store).build_updates([LineItem("p1", 2)])

        assert len(updates) == 1
        assert updates[0].increments == {"quantity": -2, "sold": 2}
        assert Condition("id", Operator.EQ, "p1") in updates[0].predicate.conditions
        assert Condition("quantity", Operator.GTE, 2) in updates[0].predicate.conditions

    def test_unguarded_when_negative_stock_allowed(
        self, inventory_store: InMemoryProductStore
    ) -> None:
        adjuster = InventoryAdjuster(inventory_store, allow_negative_stock=True)
        updates = adjuster.build_updates([LineItem("p1", 2)])
        assert updates[0].predicate.conditions == (Condition("id", Operator.EQ, "p1"),)

    def test_missing_product_id_rejected(self, inventory_store: InMemoryProductStore) -> None:
        with pytest.raises(ValidationFailedError):
            InventoryAdjuster(inventory_store).build_updates([LineItem("", 1)])

    @pytest.mark.parametrize("count", [0, -3])
    def test_non_positive_count_rejected(
        self, inventory_store: InMemoryProductStore, count: int
    ) -> None:
        with pytest.raises(ValidationFailedError):
            InventoryAdjuster(inventory_store).build_updates([LineItem("p1", count)])


class TestAdjustWithStockGuard:
    """Default policy: per-item, never below zero."""

    async def test_sufficient_stock(self, inventory_store: InMemoryProductStore) -> None:
        result = await InventoryAdjuster(inventory_store).adjust([LineItem("p1", 2)])

        assert result.all_matched
        assert await stock(inventory_store, "p1") == (8, 7)

    async def test_insufficient_stock_fails_batch_but_keeps_other_items(
        self, inventory_store: InMemoryProductStore
    ) -> None:
        """p1 commits, p2 is rejected, the call reports failure."""
        adjuster = InventoryAdjuster(inventory_store)

        with pytest.raises(InventoryAdjustmentFailedError) as exc_info:
            await adjuster.adjust([LineItem("p1", 2), LineItem("p2", 3)])

        assert exc_info.value.details == {"requested": 2, "matched": 1}
        assert await stock(inventory_store, "p1") == (8, 7)
        assert await stock(inventory_store, "p2") == (1, 0)

    async def test_missing_product_fails(self, inventory_store: InMemoryProductStore) -> None:
        with pytest.raises(InventoryAdjustmentFailedError):
            await InventoryAdjuster(inventory_store).adjust([LineItem("ghost", 1)])

    async def test_exact_remaining_stock_is_allowed(
        self, inventory_store: InMemoryProductStore
    ) -> None:
        await InventoryAdjuster(inventory_store).adjust([LineItem("p2", 1)])
        assert await stock(inventory_store, "p2") == (0, 1)

    async def test_repeated_item_is_applied_in_order(
        self, inventory_store: InMemoryProductStore
    ) -> None:
        """The second decrement sees the first one's result."""
        with pytest.raises(InventoryAdjustmentFailedError):
            await InventoryAdjuster(inventory_store).adjust(
                [LineItem("p2", 1), LineItem("p2", 1)]
            )
        assert await stock(inventory_store, "p2") == (0, 1)


class TestConcurrentAdjustments:
    """Concurrent orders for the same product."""

    async def test_concurrent_orders_never_oversell(self) -> None:
        store = InMemoryProductStore(products=[make_product("p1", quantity=10, sold=0)])
        adjuster = InventoryAdjuster(store)

        results = await asyncio.gather(
            *(adjuster.adjust([LineItem("p1", 3)]) for _ in range(8)),
            return_exceptions=True,
        )

        committed = [r for r in results if not isinstance(r, BaseException)]
        rejected = [r for r in results if isinstance(r, InventoryAdjustmentFailedError)]
        assert len(committed) == 3
        assert len(rejected) == 5
        assert await stock(store, "p1") == (1, 9)


class TestAdjustWithoutStockGuard:
    """Legacy policy: unconditional decrement."""

    async def test_stock_may_go_negative(self, inventory_store: InMemoryProductStore) -> None:
        adjuster = InventoryAdjuster(inventory_store, allow_negative_stock=True)

        result = await adjuster.adjust([LineItem("p1", 2), LineItem("p2", 3)])

        assert result.matched == (True, True)
        assert await stock(inventory_store, "p1") == (8, 7)
        assert await stock(inventory_store, "p2") == (-2, 3)


class TestAdjustEdgeCases:
    """Empty batches and store failures."""

    async def test_empty_batch_is_noop(self, inventory_store: InMemoryProductStore) -> None:
        result = await InventoryAdjuster(inventory_store).adjust([])
        assert result == BulkWriteResult()

    async def test_store_failure_is_reported(self) -> None:
        store = FailingStore(products=[make_product("p1")])

        with pytest.raises(InventoryAdjustmentFailedError) as exc_info:
            await InventoryAdjuster(store).adjust([LineItem("p1", 1)])

        assert isinstance(exc_info.value.__cause__, WriteFailedError)
        assert exc_info.value.details == {"requested": 1, "matched": 0}
