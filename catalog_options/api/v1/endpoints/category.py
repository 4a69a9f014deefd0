from typing import List, Optional
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from catalog_options.api import deps
from catalog_options.models.category import Category as CategoryModel
from catalog_options.schemas.attribute_value import AggregatedAttribute
from catalog_options.schemas.category import (
    Category,
    CategoryAttributeCreate,
    CategoryAttributeUpdate,
    CategoryCreate,
)
from catalog_options.schemas.option import CategoryOption, OptionCreate, OptionReorder, OptionUpdate
from catalog_options.schemas.resolved import ResolvedAttributeDetail
from catalog_options.services import attribute_resolver, attribute_values, catalog, option_resolver
from catalog_options.services.common import get_or_raise

router = APIRouter()

def _detail(db: Session, attribute) -> ResolvedAttributeDetail:
    return ResolvedAttributeDetail.from_effective(
        attribute,
        option_resolver.resolve_options(db, attribute),
        option_resolver.option_source(db, attribute),
    )

@router.get("/", response_model=List[Category])
async def get_categories(
    skip: int = 0,
    limit: int = 100,
    parent_id: Optional[int] = None,
    db: Session = Depends(deps.get_db)
):
    """Retrieve categories with optional filtering"""
    return catalog.list_categories(db, skip, limit, parent_id)

@router.get("/{category_id}", response_model=Category)
async def get_category(
    category_id: int,
    db: Session = Depends(deps.get_db)
):
    """
    Get a specific category by ID.
    """
    return get_or_raise(db, CategoryModel, category_id, "Category")

@router.post("/", response_model=Category, status_code=status.HTTP_201_CREATED)
async def create_category(
    category: CategoryCreate,
    db: Session = Depends(deps.get_db)
):
    """
    Create a new category.
    """
    return catalog.create_category(db, category.model_dump())

@router.delete("/{category_id}")
async def delete_category(
    category_id: int,
    policy: Optional[str] = Depends(deps.get_delete_policy),
    db: Session = Depends(deps.get_db)
):
    """
    Delete a category; its products are kept without a category.
    """
    catalog.delete_category(db, category_id, policy)
    return {"message": "Category deleted successfully"}

# Category attributes

@router.get("/{category_id}/attributes", response_model=List[ResolvedAttributeDetail])
async def get_category_attributes(
    category_id: int,
    db: Session = Depends(deps.get_db)
):
    """
    Effective attributes of a category (category overrides over global defaults).
    """
    return [_detail(db, a) for a in attribute_resolver.list_category_attributes(db, category_id)]

@router.post(
    "/{category_id}/attributes",
    response_model=ResolvedAttributeDetail,
    status_code=status.HTTP_201_CREATED,
)
async def attach_category_attribute(
    category_id: int,
    payload: CategoryAttributeCreate,
    db: Session = Depends(deps.get_db)
):
    """
    Attach a global attribute to a category, optionally with overrides.
    """
    overrides = payload.model_dump(exclude_unset=True, exclude={"attribute_id"})
    category_attribute = attribute_resolver.attach_attribute_to_category(
        db, category_id, payload.attribute_id, overrides
    )
    return _detail(db, attribute_resolver.resolve_category_attribute(category_attribute))

@router.get("/{category_id}/attributes/{category_attribute_id}", response_model=ResolvedAttributeDetail)
async def get_category_attribute(
    category_id: int,
    category_attribute_id: int,
    db: Session = Depends(deps.get_db)
):
    """
    Get one effective category attribute with its options.
    """
    category_attribute = attribute_resolver.get_category_attribute(db, category_attribute_id, category_id)
    return _detail(db, attribute_resolver.resolve_category_attribute(category_attribute))

@router.put("/{category_id}/attributes/{category_attribute_id}", response_model=ResolvedAttributeDetail)
async def update_category_attribute(
    category_id: int,
    category_attribute_id: int,
    payload: CategoryAttributeUpdate,
    db: Session = Depends(deps.get_db)
):
    """
    Set or clear category overrides; null clears back to the global value.
    """
    category_attribute = attribute_resolver.update_category_attribute(
        db, category_attribute_id, payload.model_dump(exclude_unset=True), category_id
    )
    return _detail(db, attribute_resolver.resolve_category_attribute(category_attribute))

@router.delete("/{category_id}/attributes/{category_attribute_id}")
async def delete_category_attribute(
    category_id: int,
    category_attribute_id: int,
    policy: Optional[str] = Depends(deps.get_delete_policy),
    db: Session = Depends(deps.get_db)
):
    """
    Detach an attribute from a category.
    """
    attribute_resolver.remove_attribute_from_category(db, category_attribute_id, category_id, policy)
    return {"message": "Category attribute deleted successfully"}

# Category options

@router.get("/{category_id}/attributes/{category_attribute_id}/options", response_model=List[CategoryOption])
async def get_category_options(
    category_id: int,
    category_attribute_id: int,
    db: Session = Depends(deps.get_db)
):
    """
    Stored category-level options of a category attribute.
    """
    category_attribute = attribute_resolver.get_category_attribute(db, category_attribute_id, category_id)
    return sorted(category_attribute.options, key=lambda o: (o.sort_order, o.value, o.id))

@router.post(
    "/{category_id}/attributes/{category_attribute_id}/options",
    response_model=CategoryOption,
    status_code=status.HTTP_201_CREATED,
)
async def create_category_option(
    category_id: int,
    category_attribute_id: int,
    option: OptionCreate,
    db: Session = Depends(deps.get_db)
):
    """
    Add a category-level option; category-sourced product attributes offer only these.
    """
    attribute_resolver.get_category_attribute(db, category_attribute_id, category_id)
    return option_resolver.create_category_option(db, category_attribute_id, option.model_dump(exclude_unset=True))

@router.post(
    "/{category_id}/attributes/{category_attribute_id}/options/reorder",
    response_model=List[CategoryOption],
)
async def reorder_category_options(
    category_id: int,
    category_attribute_id: int,
    payload: OptionReorder,
    db: Session = Depends(deps.get_db)
):
    """
    Reorder category options; the list must name every option once.
    """
    attribute_resolver.get_category_attribute(db, category_attribute_id, category_id)
    return option_resolver.reorder_category_options(db, category_attribute_id, payload.option_ids)

@router.put(
    "/{category_id}/attributes/{category_attribute_id}/options/{option_id}",
    response_model=CategoryOption,
)
async def update_category_option(
    category_id: int,
    category_attribute_id: int,
    option_id: int,
    option: OptionUpdate,
    db: Session = Depends(deps.get_db)
):
    """
    Update a category-level option.
    """
    attribute_resolver.get_category_attribute(db, category_attribute_id, category_id)
    return option_resolver.update_category_option(
        db, option_id, option.model_dump(exclude_unset=True), category_attribute_id
    )

@router.delete("/{category_id}/attributes/{category_attribute_id}/options/{option_id}")
async def delete_category_option(
    category_id: int,
    category_attribute_id: int,
    option_id: int,
    db: Session = Depends(deps.get_db)
):
    """
    Delete a category-level option.
    """
    attribute_resolver.get_category_attribute(db, category_attribute_id, category_id)
    option_resolver.delete_category_option(db, option_id, category_attribute_id)
    return {"message": "Category option deleted successfully"}

# Aggregated values

@router.get("/{category_id}/attribute-values", response_model=List[AggregatedAttribute])
async def get_category_attribute_values(
    category_id: int,
    filterable_only: bool = True,
    db: Session = Depends(deps.get_db)
):
    """
    Distinct assigned values across the category's products, for building filters.
    """
    return attribute_values.aggregate_category_values(db, category_id, filterable_only)
