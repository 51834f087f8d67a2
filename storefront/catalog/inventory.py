"""Inventory adjustment.

Turns an order's line items into one bulk conditional decrement.

Policy:
    - Each line item is applied on its own. Items that match commit even
      when other items in the batch do not.
    - By default every decrement is guarded by ``quantity >= count`` so
      stock never goes negative. ``allow_negative_stock`` drops the guard.
    - If any item does not match, or the store fails, the call raises
      ``InventoryAdjustmentFailedError`` without saying which items
      committed.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

import structlog

from storefront.catalog.filters import Condition, Operator, Predicate
from storefront.catalog.store import BulkWriteResult, ConditionalUpdate, ProductStore
from storefront.domain.exceptions import (
    InventoryAdjustmentFailedError,
    ValidationFailedError,
    WriteFailedError,
)

logger = structlog.get_logger()


@dataclass(frozen=True)
class LineItem:
    """One order entry: a product and how many units were bought."""

    product_id: str
    count: int


class InventoryAdjuster:
    """Builds and submits bulk stock decrements.

    Example usage:
        adjuster = InventoryAdjuster(store)
        await adjuster.adjust([LineItem("p1", 2), LineItem("p2", 3)])
    """

    def __init__(self, store: ProductStore, allow_negative_stock: bool = False) -> None:
        """Initialize adjuster.

        Args:
            store: Product store.
            allow_negative_stock: Skip the ``quantity >= count`` guard.
        """
        self.store = store
        self.allow_negative_stock = allow_negative_stock

    def build_updates(self, items: Iterable[LineItem]) -> list[ConditionalUpdate]:
        """Build one guarded mutation per line item.

        Args:
            items: Line items in order.

        Returns:
            Conditional updates, in the same order.

        Raises:
            ValidationFailedError: If a product ID is missing or a count is not positive.
        """
        updates = []
        for item in items:
            if not item.product_id:
                raise ValidationFailedError("Line item is missing a product id", fields=["_id"])
            if item.count <= 0:
                raise ValidationFailedError(
                    f"Line item count must be positive, got {item.count}",
                    fields=["count"],
                )

            conditions = [Condition("id", Operator.EQ, item.product_id)]
            if not self.allow_negative_stock:
                conditions.append(Condition("quantity", Operator.GTE, item.count))

            updates.append(
                ConditionalUpdate(
                    predicate=Predicate(tuple(conditions)),
                    increments={"quantity": -item.count, "sold": item.count},
                )
            )
        return updates

    async def adjust(self, items: Sequence[LineItem]) -> BulkWriteResult:
        """Decrement stock and increment sold counts for an order.

        Args:
            items: Line items of the order.

        Returns:
            Store outcome, all items matched.

        Raises:
            ValidationFailedError: If a line item is invalid. Nothing is written.
            InventoryAdjustmentFailedError: If the batch did not fully commit.
        """
        updates = self.build_updates(items)
        if not updates:
            return BulkWriteResult()

        try:
            result = await self.store.bulk_conditional_update(updates)
        except WriteFailedError as e:
            logger.error("Inventory adjustment failed", item_count=len(updates), error=e.message)
            raise InventoryAdjustmentFailedError(requested=len(updates)) from e

        if not result.all_matched:
            logger.warning(
                "Inventory adjustment partially applied",
                requested=result.requested_count,
                matched=result.matched_count,
                stock_guard=not self.allow_negative_stock,
            )
            raise InventoryAdjustmentFailedError(
                requested=result.requested_count,
                matched=result.matched_count,
            )

        logger.info("Inventory adjusted", item_count=result.requested_count)
        return result
