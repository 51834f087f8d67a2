"""Catalog service for product operations.

High-level service that combines the filter compiler, query planner,
asset handling and inventory adjustment over a product store. This is
the surface the request-handling layer calls with already-parsed
arguments.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

import structlog

from storefront.catalog.assets import AssetUpload, prepare_asset
from storefront.catalog.filters import (
    compile_filters,
    related_predicate,
    text_search_predicate,
)
from storefront.catalog.inventory import InventoryAdjuster, LineItem
from storefront.catalog.planner import PlanDefaults, Projection, SortOrder, plan_query
from storefront.catalog.records import ImageAsset, Product, ProductPatch
from storefront.catalog.store import BulkWriteResult, ProductStore
from storefront.domain.exceptions import ProductNotFoundError
from storefront.infrastructure.config import Settings, settings as default_settings

logger = structlog.get_logger()


@dataclass
class SearchResult:
    """Search result container.

    Attributes:
        size: Number of products in this page.
        products: Products in this page.
    """

    size: int
    products: list[Product] = field(default_factory=list)


class CatalogService:
    """Service for catalog operations.

    Id-scoped operations take the record already resolved by
    ``get_product`` instead of looking it up again.

    Example usage:
        service = CatalogService(SqlProductStore())

        # Best sellers
        products = await service.list_products(sort_by="sold", order="desc", limit=4)

        # Filtered search
        result = await service.search_products(
            {"category": ["c1"], "price": [0, 10]},
            sort_by="price",
        )
    """

    def __init__(self, store: ProductStore, config: Settings | None = None) -> None:
        """Initialize service with a product store.

        Args:
            store: Product store.
            config: Settings; defaults to the application settings.
        """
        self.store = store
        self.config = config or default_settings

        self.listing_defaults = PlanDefaults.of(
            self.config.listing_default_sort_by,
            self.config.listing_default_order,
            self.config.listing_default_limit,
        )
        self.search_defaults = PlanDefaults.of(
            self.config.search_default_sort_by,
            self.config.search_default_order,
            self.config.search_default_limit,
        )
        self.related_defaults = PlanDefaults(
            sort_by=None,
            order=SortOrder.ASC,
            limit=self.config.related_default_limit,
        )
        self.text_search_defaults = PlanDefaults(sort_by=None, order=SortOrder.ASC, limit=None)

        self.inventory = InventoryAdjuster(
            store,
            allow_negative_stock=self.config.inventory_allow_negative_stock,
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_product(self, product_id: str, include_image: bool = False) -> Product:
        """Resolve a product by ID.

        Args:
            product_id: Product ID.
            include_image: Whether to load the image payload.

        Returns:
            The product.

        Raises:
            ProductNotFoundError: If no product has this ID.
        """
        projection = Projection.ALL if include_image else Projection.WITHOUT_ASSET
        product = await self.store.find_by_id(product_id, projection)
        if product is None:
            raise ProductNotFoundError(product_id)
        return product

    async def list_products(
        self,
        sort_by: str | None = None,
        order: str | None = None,
        limit: int | None = None,
    ) -> list[Product]:
        """List products, e.g. best sellers or new arrivals.

        By sold: ``sort_by="sold", order="desc", limit=4``.
        By arrival: ``sort_by="created_at", order="desc", limit=4``.

        Args:
            sort_by: Sort field.
            order: Sort direction.
            limit: Maximum products.

        Returns:
            Products without image payloads.
        """
        plan = plan_query(
            defaults=self.listing_defaults,
            sort_by=sort_by,
            order=order,
            limit=limit,
        )
        return await self.store.query(plan)

    async def list_related(self, product: Product, limit: int | None = None) -> list[Product]:
        """List other products in the same category.

        Args:
            product: Resolved product.
            limit: Maximum products.

        Returns:
            Related products without image payloads.
        """
        plan = plan_query(
            related_predicate(product.id, product.category_id),
            defaults=self.related_defaults,
            limit=limit,
        )
        return await self.store.query(plan)

    async def list_categories(self) -> set[str]:
        """Get the IDs of every category used by at least one product."""
        return await self.store.distinct("category_id")

    async def search_products(
        self,
        filters: Mapping[str, Any] | None = None,
        sort_by: str | None = None,
        order: str | None = None,
        limit: int | None = None,
        skip: int | None = None,
    ) -> SearchResult:
        """Search products by category, price range and other field constraints.

        Args:
            filters: Field name to constraint; ``price`` takes ``[min, max]``.
            sort_by: Sort field.
            order: Sort direction.
            limit: Page size.
            skip: Records to skip.

        Returns:
            Page of matching products without image payloads.
        """
        plan = plan_query(
            compile_filters(filters),
            defaults=self.search_defaults,
            sort_by=sort_by,
            order=order,
            limit=limit,
            skip=skip,
        )
        products = await self.store.query(plan)

        logger.debug(
            "Product search",
            conditions=len(plan.predicate.conditions),
            sort_by=plan.sort_by,
            order=plan.order.value,
            skip=plan.skip,
            limit=plan.limit,
            size=len(products),
        )
        return SearchResult(size=len(products), products=products)

    async def text_search(self, name: str | None, category: str | None = None) -> list[Product]:
        """Find products whose name contains a substring, ignoring case.

        Args:
            name: Substring to match. Empty means no search, so no results.
            category: Category ID, or ``"All"`` for every category.

        Returns:
            Matching products without image payloads.
        """
        if not name:
            return []

        plan = plan_query(
            text_search_predicate(name, category),
            defaults=self.text_search_defaults,
        )
        return await self.store.query(plan)

    def get_asset(self, product: Product) -> ImageAsset | None:
        """Get the stored image of a product.

        Args:
            product: Product resolved with ``include_image=True``.

        Returns:
            The image, or None when the product has none.
        """
        return product.image

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create_product(
        self,
        fields: Mapping[str, Any],
        asset: AssetUpload | None = None,
    ) -> Product:
        """Create a product from form fields and an optional image.

        Args:
            fields: Parsed form fields. All of name, description, price,
                category, quantity and shipping are required.
            asset: Uploaded image.

        Returns:
            The stored product, without its image payload.

        Raises:
            ValidationFailedError: If a required field is missing or invalid.
            AssetTooLargeError: If the image exceeds the size ceiling.
            WriteFailedError: If the store rejects the write.
        """
        image = prepare_asset(asset, self.config.max_image_bytes) if asset else None
        product = Product.create(ProductPatch.from_fields(fields, image=image))

        await self.store.insert(product)
        logger.info("Product created", product_id=product.id, has_image=image is not None)
        return await self.get_product(product.id)

    async def update_product(
        self,
        product: Product,
        fields: Mapping[str, Any],
        asset: AssetUpload | None = None,
    ) -> Product:
        """Overwrite the supplied fields of a product.

        Fields that are not supplied keep their stored value. The image is
        replaced only when a new one is uploaded.

        Args:
            product: Resolved product.
            fields: Parsed form fields to overwrite.
            asset: Replacement image.

        Returns:
            The updated product, without its image payload.

        Raises:
            ValidationFailedError: If a supplied field is invalid.
            AssetTooLargeError: If the image exceeds the size ceiling.
            ProductNotFoundError: If the product was deleted meanwhile.
            WriteFailedError: If the store rejects the write.
        """
        image = prepare_asset(asset, self.config.max_image_bytes) if asset else None
        patch = ProductPatch.from_fields(fields, image=image)

        if patch.is_empty:
            return product.without_image()

        updated = await self.store.update(product.id, patch.changes())
        logger.info("Product updated", product_id=product.id, fields=sorted(patch.changes()))
        return updated

    async def delete_product(self, product: Product) -> None:
        """Delete a product. Nothing referencing it is cleaned up.

        Raises:
            ProductNotFoundError: If the product was deleted meanwhile.
            WriteFailedError: If the store rejects the delete.
        """
        await self.store.delete(product.id)
        logger.info("Product deleted", product_id=product.id)

    async def adjust_inventory(self, line_items: Sequence[LineItem]) -> BulkWriteResult:
        """Decrement stock and record sales for an order's line items.

        Raises:
            ValidationFailedError: If a line item is invalid.
            InventoryAdjustmentFailedError: If the batch did not fully commit.
        """
        return await self.inventory.adjust(line_items)
