"""
Products Router: catalog browsing for the POS (products, variations, categories).
"""
from fastapi import APIRouter, Depends
from typing import Optional
import logging

from pos_backend.routers.dependencies import get_catalog_cache, require_auth
from pos_backend.services.cache_service import CacheService
from pos_backend.services.woo_service import woo_service
from pos_backend.utils.config import settings
from pos_backend.utils.normalization import normalize_product, normalize_variation

router = APIRouter(dependencies=[Depends(require_auth)])
logger = logging.getLogger(__name__)

SEARCH_PAGE_SIZE = 100


@router.get("/products")
async def list_products(
    page: int = 1,
    limit: int = 20,
    category: Optional[str] = None,
    sku: Optional[str] = None,
    search: Optional[str] = None,
    per_page: Optional[int] = None,
):
    """Barcode lookup by `sku`, full-catalog `search`, or a plain page."""
    if sku:
        products = await woo_service.fetch_products_by_sku(sku)
        return {"data": [normalize_product(p) for p in products]}

    if search:
        search_limit = per_page or SEARCH_PAGE_SIZE
        products = await woo_service.fetch_products(page=1, limit=search_limit, category=category,
                                                    search=search.strip())
        return {
            "data": [normalize_product(p) for p in products],
            "meta": {"page": 1, "limit": search_limit, "isSearch": True},
        }

    products = await woo_service.fetch_products(page=page, limit=limit, category=category)
    return {
        "data": [normalize_product(p) for p in products],
        "meta": {"page": page, "limit": limit, "hasNext": len(products) == limit},
    }


@router.get("/products/{product_id}")
async def get_product(product_id: int):
    return normalize_product(await woo_service.fetch_product(product_id))


@router.get("/products/{product_id}/variations")
async def get_variations(product_id: int, cache: CacheService = Depends(get_catalog_cache)):
    async def fetch():
        variations = await woo_service.fetch_variations(product_id)
        return [normalize_variation(v) for v in variations]

    return await cache.get_or_fetch(f"variations:{product_id}", fetch, ttl=settings.VARIATION_CACHE_TTL)


@router.get("/categories")
async def get_categories(cache: CacheService = Depends(get_catalog_cache)):
    return await cache.get_or_fetch("categories", woo_service.fetch_categories, ttl=settings.CATEGORY_CACHE_TTL)
