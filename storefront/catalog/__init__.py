"""Product Catalog Service.

Provides product storage, filtered search, pagination, image assets and
inventory adjustment for the storefront.
"""

from storefront.catalog.assets import AssetUpload, prepare_asset
from storefront.catalog.filters import Condition, Operator, Predicate, compile_filters
from storefront.catalog.inventory import InventoryAdjuster, LineItem
from storefront.catalog.planner import PlanDefaults, Projection, QueryPlan, SortOrder, plan_query
from storefront.catalog.records import Category, ImageAsset, Product, ProductPatch
from storefront.catalog.repository import SqlProductStore
from storefront.catalog.service import CatalogService, SearchResult
from storefront.catalog.store import (
    BulkWriteResult,
    ConditionalUpdate,
    InMemoryProductStore,
    ProductStore,
)

__all__ = [
    # Records
    "Category",
    "ImageAsset",
    "Product",
    "ProductPatch",
    # Filters
    "Condition",
    "Operator",
    "Predicate",
    "compile_filters",
    # Planner
    "PlanDefaults",
    "Projection",
    "QueryPlan",
    "SortOrder",
    "plan_query",
    # Store
    "BulkWriteResult",
    "ConditionalUpdate",
    "InMemoryProductStore",
    "ProductStore",
    "SqlProductStore",
    # Assets
    "AssetUpload",
    "prepare_asset",
    # Inventory
    "InventoryAdjuster",
    "LineItem",
    # Service
    "CatalogService",
    "SearchResult",
]
