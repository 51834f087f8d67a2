"""Product repository for database operations.

SQLAlchemy implementation of ``ProductStore``. Each call opens its own
session, so every operation is a single round trip and transaction.
"""

from collections.abc import Mapping, Sequence
from datetime import datetime, timezone
from typing import Any

import structlog
from sqlalchemy import ColumnElement, and_, delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload, undefer
from sqlalchemy.sql import Select

from storefront.catalog.assets import DEFAULT_CONTENT_TYPE
from storefront.catalog.filters import MATCH_ALL, Condition, Operator, Predicate
from storefront.catalog.models import ProductModel
from storefront.catalog.planner import Projection, QueryPlan, SortOrder
from storefront.catalog.records import Category, ImageAsset, Product
from storefront.catalog.store import (
    COUNTER_FIELDS,
    BulkWriteResult,
    ConditionalUpdate,
    ProductStore,
)
from storefront.domain.exceptions import (
    ProductNotFoundError,
    QueryFailedError,
    WriteFailedError,
)
from storefront.infrastructure.database import async_session_factory

logger = structlog.get_logger()

# Columns callers may filter, sort or write by name.
QUERYABLE_COLUMNS = frozenset(
    {
        "id",
        "name",
        "description",
        "price",
        "category_id",
        "quantity",
        "sold",
        "shipping",
        "created_at",
        "updated_at",
    }
)


class SqlProductStore(ProductStore):
    """Product store backed by an async SQLAlchemy session factory.

    Example usage:
        store = SqlProductStore(async_session_factory)
        products = await store.query(
            plan_query(compile_filters({"category": ["c1"]}), limit=20)
        )
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] = async_session_factory,
    ) -> None:
        """Initialize repository with a session factory.

        Args:
            session_factory: Factory producing async sessions.
        """
        self.session_factory = session_factory

    async def insert(self, product: Product) -> str:
        """Save a new product.

        Args:
            product: Product to save.

        Returns:
            ID of the saved product.
        """
        model = ProductModel(
            id=product.id,
            name=product.name,
            description=product.description,
            price=product.price,
            category_id=product.category_id,
            quantity=product.quantity,
            sold=product.sold,
            shipping=product.shipping,
            image_data=product.image.data if product.image else None,
            image_content_type=product.image.content_type if product.image else None,
            created_at=product.created_at,
            updated_at=product.updated_at,
        )

        try:
            async with self.session_factory() as session:
                async with session.begin():
                    session.add(model)
        except SQLAlchemyError as e:
            logger.warning("Product insert failed", product_id=product.id, error=str(e))
            raise WriteFailedError("Could not save product", cause=e) from e

        return model.id

    async def find_by_id(
        self,
        product_id: str,
        projection: Projection = Projection.WITHOUT_ASSET,
    ) -> Product | None:
        """Get product by ID.

        Args:
            product_id: Product ID.
            projection: Whether to load the image payload.

        Returns:
            Product if found, None otherwise.
        """
        query = self._select(projection).where(ProductModel.id == product_id)

        try:
            async with self.session_factory() as session:
                result = await session.execute(query)
                model = result.scalar_one_or_none()
                return self._to_record(model, projection) if model else None
        except SQLAlchemyError as e:
            raise QueryFailedError("Could not load product", cause=e) from e

    async def update(self, product_id: str, changes: Mapping[str, Any]) -> Product:
        """Overwrite the given fields of one product.

        Args:
            product_id: Product ID.
            changes: Field name to new value. ``image`` takes an ``ImageAsset``.

        Returns:
            The updated product, without its image payload.
        """
        values = self._to_values(changes)
        values["updated_at"] = datetime.now(timezone.utc)

        statement = (
            update(ProductModel)
            .where(ProductModel.id == product_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )

        try:
            async with self.session_factory() as session:
                async with session.begin():
                    result = await session.execute(statement)
                    if result.rowcount == 0:
                        raise ProductNotFoundError(product_id)

                reloaded = await session.execute(
                    self._select(Projection.WITHOUT_ASSET).where(ProductModel.id == product_id)
                )
                return self._to_record(reloaded.scalar_one(), Projection.WITHOUT_ASSET)
        except SQLAlchemyError as e:
            logger.warning("Product update failed", product_id=product_id, error=str(e))
            raise WriteFailedError("Could not update product", cause=e) from e

    async def delete(self, product_id: str) -> None:
        """Delete a product by ID.

        Args:
            product_id: Product ID.
        """
        statement = (
            delete(ProductModel)
            .where(ProductModel.id == product_id)
            .execution_options(synchronize_session=False)
        )

        try:
            async with self.session_factory() as session:
                async with session.begin():
                    result = await session.execute(statement)
                    if result.rowcount == 0:
                        raise ProductNotFoundError(product_id)
        except SQLAlchemyError as e:
            logger.warning("Product delete failed", product_id=product_id, error=str(e))
            raise WriteFailedError("Could not delete product", cause=e) from e

    async def query(self, plan: QueryPlan) -> list[Product]:
        """Find products matching a query plan.

        Args:
            plan: Predicate, sort, pagination and projection.

        Returns:
            Matching products.
        """
        query = self._select(plan.projection)

        conditions = [self._clause(c) for c in plan.predicate.conditions]
        if conditions:
            query = query.where(and_(*conditions))

        # Sorting
        if plan.sort_by:
            sort_column = self._column(plan.sort_by)
            if plan.order is SortOrder.DESC:
                query = query.order_by(sort_column.desc())
            else:
                query = query.order_by(sort_column.asc())

        # Pagination
        if plan.skip:
            query = query.offset(plan.skip)
        if plan.limit is not None:
            query = query.limit(plan.limit)

        try:
            async with self.session_factory() as session:
                result = await session.execute(query)
                return [self._to_record(m, plan.projection) for m in result.scalars().all()]
        except SQLAlchemyError as e:
            raise QueryFailedError("Products not found", cause=e) from e

    async def distinct(self, field_name: str, predicate: Predicate = MATCH_ALL) -> set[Any]:
        """Get distinct values of a column.

        Args:
            field_name: Column name.
            predicate: Optional filter.

        Returns:
            Set of distinct values.
        """
        query = select(self._column(field_name)).distinct()

        conditions = [self._clause(c) for c in predicate.conditions]
        if conditions:
            query = query.where(and_(*conditions))

        try:
            async with self.session_factory() as session:
                result = await session.execute(query)
                return set(result.scalars().all())
        except SQLAlchemyError as e:
            raise QueryFailedError(f"Could not list distinct {field_name}", cause=e) from e

    async def bulk_conditional_update(
        self,
        updates: Sequence[ConditionalUpdate],
    ) -> BulkWriteResult:
        """Apply guarded increments inside one transaction.

        Each update is its own ``UPDATE ... WHERE`` statement, so an update
        whose guard does not match leaves the others in place. A database
        error rolls the whole transaction back.

        Args:
            updates: Guarded increments.

        Returns:
            Matched flag per update.
        """
        now = datetime.now(timezone.utc)
        statements = [self._increment_statement(u, now) for u in updates]
        matched: list[bool] = []

        try:
            async with self.session_factory() as session:
                async with session.begin():
                    for statement in statements:
                        result = await session.execute(statement)
                        matched.append(result.rowcount > 0)
        except SQLAlchemyError as e:
            logger.warning("Bulk update failed", update_count=len(statements), error=str(e))
            raise WriteFailedError("Could not update products", cause=e) from e

        return BulkWriteResult(tuple(matched))

    def _select(self, projection: Projection) -> Select[tuple[ProductModel]]:
        query = select(ProductModel).options(selectinload(ProductModel.category))
        if projection is Projection.ALL:
            query = query.options(undefer(ProductModel.image_data))
        return query

    def _increment_statement(self, item: ConditionalUpdate, now: datetime) -> Any:
        bad = set(item.increments) - COUNTER_FIELDS
        if bad:
            raise WriteFailedError(f"Cannot increment fields: {', '.join(sorted(bad))}")

        values: dict[str, Any] = {
            name: self._column(name) + delta for name, delta in item.increments.items()
        }
        values["updated_at"] = now

        statement = update(ProductModel).values(**values)
        conditions = [self._clause(c) for c in item.predicate.conditions]
        if conditions:
            statement = statement.where(and_(*conditions))
        return statement.execution_options(synchronize_session=False)

    def _column(self, field_name: str) -> Any:
        """Get SQLAlchemy column for a field name.

        Args:
            field_name: Record field name.

        Returns:
            SQLAlchemy column attribute.
        """
        if field_name not in QUERYABLE_COLUMNS:
            raise QueryFailedError(f"Unknown field: {field_name}")
        return getattr(ProductModel, field_name)

    def _clause(self, condition: Condition) -> ColumnElement[bool]:
        column = self._column(condition.field)
        value = condition.value
        op = condition.operator

        if op is Operator.EQ:
            return column == value
        if op is Operator.NE:
            return column != value
        if op is Operator.IN:
            return column.in_(list(value))
        if op is Operator.GTE:
            return column >= value
        if op is Operator.LTE:
            return column <= value
        if op is Operator.ICONTAINS:
            return column.icontains(str(value), autoescape=True)
        raise QueryFailedError(f"Unsupported operator: {op}")

    def _to_values(self, changes: Mapping[str, Any]) -> dict[str, Any]:
        values: dict[str, Any] = {}
        for name, value in changes.items():
            if name == "image":
                values["image_data"] = value.data
                values["image_content_type"] = value.content_type
            elif name in QUERYABLE_COLUMNS and name != "id":
                values[name] = value
            else:
                raise WriteFailedError(f"Unknown fields: {name}")
        return values

    def _to_record(self, model: ProductModel, projection: Projection) -> Product:
        image = None
        if projection is Projection.ALL and model.image_data is not None:
            image = ImageAsset(
                data=model.image_data,
                content_type=model.image_content_type or DEFAULT_CONTENT_TYPE,
            )

        category = None
        if model.category is not None:
            category = Category(id=model.category.id, name=model.category.name)

        return Product(
            id=model.id,
            name=model.name,
            description=model.description,
            price=model.price,
            category_id=model.category_id,
            quantity=model.quantity,
            sold=model.sold,
            shipping=model.shipping,
            image=image,
            category=category,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )
