from fastapi import APIRouter, Depends, Path, Query
from typing import Annotated, Optional
from catalog.api.dependencies import get_store
from catalog.fields import MAX_INTEGER, MIN_INTEGER
from catalog.query import ProductQuery, page_count
from catalog.schemas.product import (
    ProductCreate,
    ProductUpdate,
    ProductResponse,
    ProductListResponse,
    ProductEnvelope,
    Pagination
)
from catalog.services.product_service import ProductService
from catalog.storage.base import ProductStore

router = APIRouter(prefix="/api/products", tags=["products"])

ProductId = Annotated[int, Path(ge=MIN_INTEGER, le=MAX_INTEGER, description="Product ID")]


@router.get("", response_model=ProductListResponse)
async def list_products(
    article_no: Optional[str] = Query(None, alias="articleNo", description="Article number contains (case-insensitive)"),
    product: Optional[str] = Query(None, description="Product name contains (case-insensitive)"),
    search: Optional[str] = Query(None, description="Article number or product name contains"),
    page: Optional[str] = Query(None, description="1-based page number"),
    offset: Optional[str] = Query(None, description="0-based offset, overrides page"),
    limit: Optional[str] = Query(None, description="Page size"),
    store: ProductStore = Depends(get_store)
):
    """List products with pagination and filtering."""
    query = ProductQuery.from_params({
        "articleNo": article_no,
        "product": product,
        "search": search,
        "page": page,
        "offset": offset,
        "limit": limit,
    })
    products, total = await ProductService.list_products(store, query)

    return ProductListResponse(
        products=[ProductResponse.model_validate(p) for p in products],
        pagination=Pagination(
            total=total,
            page=query.page,
            limit=query.limit,
            pages=page_count(total, query.limit)
        )
    )


@router.get("/{product_id}", response_model=ProductEnvelope)
async def get_product(
    product_id: ProductId,
    store: ProductStore = Depends(get_store)
):
    """Get a single product by ID."""
    product = await ProductService.get_product(store, product_id)
    return ProductEnvelope(product=ProductResponse.model_validate(product))


@router.post("", response_model=ProductEnvelope, status_code=201)
async def create_product(
    product_data: ProductCreate,
    store: ProductStore = Depends(get_store)
):
    """Create a new product."""
    product = await ProductService.create_product(store, product_data)
    return ProductEnvelope(product=ProductResponse.model_validate(product))


@router.put("/{product_id}", response_model=ProductEnvelope)
async def update_product(
    product_id: ProductId,
    product_data: ProductUpdate,
    store: ProductStore = Depends(get_store)
):
    """Update a product. Fields missing from the body keep their values."""
    product = await ProductService.update_product(store, product_id, product_data)
    return ProductEnvelope(product=ProductResponse.model_validate(product))


@router.patch("/{product_id}", response_model=ProductEnvelope)
async def patch_product(
    product_id: ProductId,
    product_data: ProductUpdate,
    store: ProductStore = Depends(get_store)
):
    """Update some fields of a product, e.g. a single edited cell."""
    product = await ProductService.update_product(store, product_id, product_data)
    return ProductEnvelope(product=ProductResponse.model_validate(product))


@router.delete("/{product_id}", status_code=204)
async def delete_product(
    product_id: ProductId,
    store: ProductStore = Depends(get_store)
):
    """Delete a product."""
    await ProductService.delete_product(store, product_id)
    return None
