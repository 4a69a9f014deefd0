from typing import List, Optional
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from catalog_options.api import deps
from catalog_options.models.product import Product as ProductModel
from catalog_options.schemas.attribute_value import AttributeValue, AttributeValueCreate, AttributeValueUpdate
from catalog_options.schemas.combination import (
    Combination,
    CombinationCreate,
    CombinationUpdate,
    PriceQuote,
    PriceRequest,
)
from catalog_options.schemas.option import (
    OptionReorder,
    ProductOption,
    ProductOptionCreate,
    ProductOptionUpdate,
)
from catalog_options.schemas.product import (
    Product,
    ProductAttributeCreate,
    ProductAttributeUpdate,
    ProductCreate,
    ProductUpdate,
)
from catalog_options.schemas.resolved import ResolvedAttributeDetail
from catalog_options.services import attribute_resolver, attribute_values, catalog, option_resolver, pricing
from catalog_options.services.common import get_or_raise

router = APIRouter()

# Standard messages
PRODUCT_DELETED = "Product deleted successfully"

def _detail(db: Session, attribute) -> ResolvedAttributeDetail:
    return ResolvedAttributeDetail.from_effective(
        attribute,
        option_resolver.resolve_options(db, attribute),
        option_resolver.option_source(db, attribute),
    )

@router.get("/", response_model=List[Product])
async def get_products(
    skip: int = 0,
    limit: int = 100,
    category_id: Optional[int] = None,
    db: Session = Depends(deps.get_db)
):
    """Retrieve products with optional category filter"""
    return catalog.list_products(db, skip, limit, category_id)

@router.get("/{product_id}", response_model=Product)
async def get_product(
    product_id: int,
    db: Session = Depends(deps.get_db)
):
    """Get a specific product by ID"""
    return get_or_raise(db, ProductModel, product_id, "Product")

@router.post("/", response_model=Product, status_code=status.HTTP_201_CREATED)
async def create_product(
    product: ProductCreate,
    db: Session = Depends(deps.get_db)
):
    """Create a new product"""
    return catalog.create_product(db, product.model_dump())

@router.put("/{product_id}", response_model=Product)
async def update_product(
    product_id: int,
    product: ProductUpdate,
    db: Session = Depends(deps.get_db)
):
    """Update a product; only the fields sent are changed"""
    return catalog.update_product(db, product_id, product.model_dump(exclude_unset=True))

@router.delete("/{product_id}")
async def delete_product(
    product_id: int,
    db: Session = Depends(deps.get_db)
):
    """Delete a product with its attributes, values and combinations"""
    catalog.delete_product(db, product_id)
    return {"message": PRODUCT_DELETED}

# Product attributes

@router.get("/{product_id}/attributes", response_model=List[ResolvedAttributeDetail])
async def get_product_attributes(
    product_id: int,
    db: Session = Depends(deps.get_db)
):
    """
    Effective attributes of a product with their applicable options.
    """
    return [_detail(db, a) for a in attribute_resolver.resolve_product_attributes(db, product_id)]

@router.post(
    "/{product_id}/attributes",
    response_model=ResolvedAttributeDetail,
    status_code=status.HTTP_201_CREATED,
)
async def add_product_attribute(
    product_id: int,
    payload: ProductAttributeCreate,
    db: Session = Depends(deps.get_db)
):
    """
    Attach a global or category-sourced attribute to a product.
    """
    overrides = payload.model_dump(exclude_unset=True, exclude={"attribute_id", "category_attribute_id"})
    product_attribute = attribute_resolver.add_attribute_to_product(
        db, product_id, payload.attribute_id, payload.category_attribute_id, overrides
    )
    return _detail(db, attribute_resolver.resolve_product_attribute(product_attribute))

@router.get("/{product_id}/attributes/{product_attribute_id}", response_model=ResolvedAttributeDetail)
async def get_product_attribute(
    product_id: int,
    product_attribute_id: int,
    db: Session = Depends(deps.get_db)
):
    """
    Get one effective product attribute with its options.
    """
    product_attribute = attribute_resolver.get_product_attribute(db, product_attribute_id, product_id)
    return _detail(db, attribute_resolver.resolve_product_attribute(product_attribute))

@router.put("/{product_id}/attributes/{product_attribute_id}", response_model=ResolvedAttributeDetail)
async def update_product_attribute(
    product_id: int,
    product_attribute_id: int,
    payload: ProductAttributeUpdate,
    db: Session = Depends(deps.get_db)
):
    """
    Set or clear product overrides; null clears back to the next tier.
    """
    product_attribute = attribute_resolver.update_product_attribute(
        db, product_attribute_id, payload.model_dump(exclude_unset=True), product_id
    )
    return _detail(db, attribute_resolver.resolve_product_attribute(product_attribute))

@router.delete("/{product_id}/attributes/{product_attribute_id}")
async def delete_product_attribute(
    product_id: int,
    product_attribute_id: int,
    db: Session = Depends(deps.get_db)
):
    """
    Remove an attribute from a product, with its options and combinations.
    """
    attribute_resolver.remove_attribute_from_product(db, product_attribute_id, product_id)
    return {"message": "Product attribute deleted successfully"}

# Product options

@router.get("/{product_id}/attributes/{product_attribute_id}/options", response_model=List[ProductOption])
async def get_product_options(
    product_id: int,
    product_attribute_id: int,
    db: Session = Depends(deps.get_db)
):
    """
    Stored product-level options of a product attribute.
    """
    product_attribute = attribute_resolver.get_product_attribute(db, product_attribute_id, product_id)
    return sorted(product_attribute.options, key=lambda o: (o.sort_order, o.value, o.id))

@router.post(
    "/{product_id}/attributes/{product_attribute_id}/options",
    response_model=ProductOption,
    status_code=status.HTTP_201_CREATED,
)
async def create_product_option(
    product_id: int,
    product_attribute_id: int,
    option: ProductOptionCreate,
    db: Session = Depends(deps.get_db)
):
    """
    Add a product-level option; the product's own options replace inherited ones.
    """
    attribute_resolver.get_product_attribute(db, product_attribute_id, product_id)
    return option_resolver.create_product_option(db, product_attribute_id, option.model_dump(exclude_unset=True))

@router.post(
    "/{product_id}/attributes/{product_attribute_id}/options/reorder",
    response_model=List[ProductOption],
)
async def reorder_product_options(
    product_id: int,
    product_attribute_id: int,
    payload: OptionReorder,
    db: Session = Depends(deps.get_db)
):
    """
    Reorder product options; the list must name every option once.
    """
    attribute_resolver.get_product_attribute(db, product_attribute_id, product_id)
    return option_resolver.reorder_product_options(db, product_attribute_id, payload.option_ids)

@router.put(
    "/{product_id}/attributes/{product_attribute_id}/options/{option_id}",
    response_model=ProductOption,
)
async def update_product_option(
    product_id: int,
    product_attribute_id: int,
    option_id: int,
    option: ProductOptionUpdate,
    db: Session = Depends(deps.get_db)
):
    """
    Update a product-level option.
    """
    attribute_resolver.get_product_attribute(db, product_attribute_id, product_id)
    return option_resolver.update_product_option(
        db, option_id, option.model_dump(exclude_unset=True), product_attribute_id
    )

@router.delete("/{product_id}/attributes/{product_attribute_id}/options/{option_id}")
async def delete_product_option(
    product_id: int,
    product_attribute_id: int,
    option_id: int,
    db: Session = Depends(deps.get_db)
):
    """
    Delete a product-level option.
    """
    attribute_resolver.get_product_attribute(db, product_attribute_id, product_id)
    option_resolver.delete_product_option(db, option_id, product_attribute_id)
    return {"message": "Product option deleted successfully"}

# Attribute values

@router.get("/{product_id}/attribute-values", response_model=List[AttributeValue])
async def get_attribute_values(
    product_id: int,
    db: Session = Depends(deps.get_db)
):
    """
    Assigned attribute values of a product.
    """
    return attribute_values.list_values(db, product_id)

@router.post("/{product_id}/attribute-values", response_model=AttributeValue, status_code=status.HTTP_201_CREATED)
async def create_attribute_value(
    product_id: int,
    value: AttributeValueCreate,
    db: Session = Depends(deps.get_db)
):
    """
    Assign a value; exactly one slot matching the attribute type must be set.
    """
    return attribute_values.create_value(db, product_id, value.model_dump(exclude_unset=True))

@router.put("/{product_id}/attribute-values/{value_id}", response_model=AttributeValue)
async def update_attribute_value(
    product_id: int,
    value_id: int,
    value: AttributeValueUpdate,
    db: Session = Depends(deps.get_db)
):
    """
    Update an assigned value.
    """
    return attribute_values.update_value(db, value_id, value.model_dump(exclude_unset=True), product_id)

@router.delete("/{product_id}/attribute-values/{value_id}")
async def delete_attribute_value(
    product_id: int,
    value_id: int,
    db: Session = Depends(deps.get_db)
):
    """
    Delete an assigned value.
    """
    attribute_values.delete_value(db, value_id, product_id)
    return {"message": "Attribute value deleted successfully"}

# Combinations and pricing

@router.get("/{product_id}/combinations", response_model=List[Combination])
async def get_combinations(
    product_id: int,
    db: Session = Depends(deps.get_db)
):
    """
    Explicit combination price overrides of a product.
    """
    return pricing.list_combinations(db, product_id)

@router.post("/{product_id}/combinations", response_model=Combination, status_code=status.HTTP_201_CREATED)
async def create_combination(
    product_id: int,
    payload: CombinationCreate,
    db: Session = Depends(deps.get_db)
):
    """
    Store a price override for one exact variant selection.
    """
    return pricing.create_combination(db, product_id, payload.selection, payload.price_adjustment)

@router.get("/{product_id}/combinations/{combination_id}", response_model=Combination)
async def get_combination(
    product_id: int,
    combination_id: int,
    db: Session = Depends(deps.get_db)
):
    """
    Get one combination.
    """
    return pricing.get_combination(db, product_id, combination_id)

@router.put("/{product_id}/combinations/{combination_id}", response_model=Combination)
async def update_combination(
    product_id: int,
    combination_id: int,
    payload: CombinationUpdate,
    db: Session = Depends(deps.get_db)
):
    """
    Change a combination's price adjustment.
    """
    return pricing.update_combination(db, product_id, combination_id, payload.price_adjustment)

@router.delete("/{product_id}/combinations/{combination_id}")
async def delete_combination(
    product_id: int,
    combination_id: int,
    db: Session = Depends(deps.get_db)
):
    """
    Delete a combination.
    """
    pricing.delete_combination(db, product_id, combination_id)
    return {"message": "Combination deleted successfully"}

@router.post("/{product_id}/price", response_model=PriceQuote)
async def compute_price(
    product_id: int,
    payload: PriceRequest,
    db: Session = Depends(deps.get_db)
):
    """
    Price a selection of variant attribute values.
    """
    return pricing.compute_price(db, product_id, payload.selection, payload.base_price)
