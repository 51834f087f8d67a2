"""Product API endpoints.

Thin transport adapter over ``CatalogService``: parses query strings,
JSON bodies and multipart forms, resolves products by ID and hands the
resolved record to the service. Domain errors are turned into responses
by the handler registered in ``storefront.main``.
"""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, Request, Response, status
from starlette.datastructures import UploadFile

from storefront.api.schemas import (
    DeleteResponse,
    ErrorResponse,
    InventoryRequest,
    InventoryResponse,
    ProductResponse,
    SearchRequest,
    SearchResponse,
)
from storefront.catalog.assets import AssetUpload
from storefront.catalog.inventory import LineItem
from storefront.catalog.records import Product
from storefront.catalog.repository import SqlProductStore
from storefront.catalog.service import CatalogService

router = APIRouter(prefix="/products", tags=["Products"])

IMAGE_FIELD = "image"

_catalog_service: CatalogService | None = None


# ============================================================================
# Dependencies
# ============================================================================


def get_catalog_service() -> CatalogService:
    """Get the catalog service backed by the SQL store."""
    global _catalog_service
    if _catalog_service is None:
        _catalog_service = CatalogService(SqlProductStore())
    return _catalog_service


ServiceDep = Annotated[CatalogService, Depends(get_catalog_service)]


async def resolve_product(product_id: str, service: ServiceDep) -> Product:
    """Resolve the product named in the path, without its image."""
    return await service.get_product(product_id)


async def resolve_product_with_image(product_id: str, service: ServiceDep) -> Product:
    """Resolve the product named in the path, image included."""
    return await service.get_product(product_id, include_image=True)


ProductDep = Annotated[Product, Depends(resolve_product)]


# ============================================================================
# Converters
# ============================================================================


async def read_form(request: Request) -> tuple[dict[str, Any], AssetUpload | None]:
    """Split a multipart form into plain fields and the uploaded image.

    An image part with an empty file name counts as no upload.
    """
    form = await request.form()
    fields: dict[str, Any] = {}
    asset: AssetUpload | None = None

    for key, value in form.multi_items():
        if isinstance(value, UploadFile):
            if key == IMAGE_FIELD and value.filename:
                asset = AssetUpload(
                    stream=value.file,
                    content_type=value.content_type,
                    size=value.size,
                    filename=value.filename,
                )
        else:
            fields[key] = value

    return fields, asset


def to_responses(products: list[Product]) -> list[ProductResponse]:
    return [ProductResponse.from_record(p) for p in products]


# ============================================================================
# Listing Endpoints
# ============================================================================


@router.get(
    "",
    response_model=list[ProductResponse],
    summary="List products",
    description="List products sorted by any field, e.g. best sellers "
    "(sortBy=sold&order=desc) or new arrivals (sortBy=createdAt&order=desc).",
)
async def list_products(
    service: ServiceDep,
    sort_by: Annotated[str | None, Query(alias="sortBy")] = None,
    order: str | None = None,
    limit: Annotated[int | None, Query(ge=0)] = None,
) -> list[ProductResponse]:
    """List products."""
    products = await service.list_products(sort_by=sort_by, order=order, limit=limit)
    return to_responses(products)


@router.post(
    "/by/search",
    response_model=SearchResponse,
    responses={400: {"model": ErrorResponse}},
    summary="Search products by filters",
)
async def search_products(body: SearchRequest, service: ServiceDep) -> SearchResponse:
    """Search products by category, shipping, price range and sort/page options."""
    result = await service.search_products(
        filters=body.filters,
        sort_by=body.sort_by,
        order=body.order,
        limit=body.limit,
        skip=body.skip,
    )
    return SearchResponse(size=result.size, data=to_responses(result.products))


@router.get(
    "/search",
    response_model=list[ProductResponse],
    summary="Search products by name",
)
async def text_search(
    service: ServiceDep,
    search: str | None = None,
    category: str | None = None,
) -> list[ProductResponse]:
    """Case-insensitive name search, optionally within one category."""
    products = await service.text_search(search, category)
    return to_responses(products)


@router.get(
    "/categories",
    response_model=list[str],
    summary="List categories in use",
)
async def list_categories(service: ServiceDep) -> list[str]:
    """Get IDs of categories that have at least one product."""
    return sorted(await service.list_categories())


@router.get(
    "/related/{product_id}",
    response_model=list[ProductResponse],
    responses={404: {"model": ErrorResponse}},
    summary="List related products",
)
async def list_related(
    product: ProductDep,
    service: ServiceDep,
    limit: Annotated[int | None, Query(ge=0)] = None,
) -> list[ProductResponse]:
    """List other products in the same category."""
    products = await service.list_related(product, limit=limit)
    return to_responses(products)


@router.get(
    "/photo/{product_id}",
    responses={
        204: {"description": "Product has no image"},
        404: {"model": ErrorResponse},
    },
    summary="Get product image",
)
async def get_photo(
    product: Annotated[Product, Depends(resolve_product_with_image)],
    service: ServiceDep,
) -> Response:
    """Stream the stored image with its content type."""
    asset = service.get_asset(product)
    if asset is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return Response(content=asset.data, media_type=asset.content_type)


@router.get(
    "/{product_id}",
    response_model=ProductResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Get product",
)
async def read_product(product: ProductDep) -> ProductResponse:
    """Get a product without its image."""
    return ProductResponse.from_record(product)


# ============================================================================
# Write Endpoints
# ============================================================================


@router.post(
    "",
    response_model=ProductResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse},
        413: {"model": ErrorResponse},
    },
    summary="Create product",
)
async def create_product(request: Request, service: ServiceDep) -> ProductResponse:
    """Create a product from a multipart form with an optional ``image`` file."""
    fields, asset = await read_form(request)
    product = await service.create_product(fields, asset)
    return ProductResponse.from_record(product)


@router.put(
    "/{product_id}",
    response_model=ProductResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        413: {"model": ErrorResponse},
    },
    summary="Update product",
)
async def update_product(
    request: Request,
    product: ProductDep,
    service: ServiceDep,
) -> ProductResponse:
    """Overwrite the fields present in the form; others are kept."""
    fields, asset = await read_form(request)
    updated = await service.update_product(product, fields, asset)
    return ProductResponse.from_record(updated)


@router.delete(
    "/{product_id}",
    response_model=DeleteResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Delete product",
)
async def delete_product(product: ProductDep, service: ServiceDep) -> DeleteResponse:
    """Delete a product."""
    await service.delete_product(product)
    return DeleteResponse(message="Product deleted successfully")


@router.post(
    "/inventory/decrease",
    response_model=InventoryResponse,
    responses={
        400: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
    summary="Decrease stock for an order",
)
async def decrease_quantity(body: InventoryRequest, service: ServiceDep) -> InventoryResponse:
    """Decrement quantity and increment sold for every line item of an order."""
    items = [LineItem(product_id=i.product_id, count=i.count) for i in body.order.products]
    result = await service.adjust_inventory(items)
    return InventoryResponse(adjusted=result.matched_count)
