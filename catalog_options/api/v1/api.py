from fastapi import APIRouter
from catalog_options.api.v1.endpoints import attribute, category, product

api_router = APIRouter()

api_router.include_router(
    attribute.router,
    prefix="/catalog/attributes",
    tags=["attributes"],
)

api_router.include_router(
    category.router,
    prefix="/catalog/categories",
    tags=["categories"],
)

api_router.include_router(
    product.router,
    prefix="/catalog/products",
    tags=["products"],
)
