from typing import List
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from catalog_options.api import deps
from catalog_options.models.attribute import AttributeType
from catalog_options.schemas.attribute import (
    Attribute,
    AttributeCreate,
    AttributeOption,
    AttributeOptionCreate,
    AttributeOptionUpdate,
    AttributeUpdate,
    AttributeWithOptions,
)
from catalog_options.services import catalog

router = APIRouter()

def _serialize(attribute) -> dict:
    return Attribute.model_validate(attribute).model_dump(mode="json")

@router.get("/", response_model=List[Attribute])
async def get_attributes(
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(deps.get_db)
):
    """
    Retrieve all global attributes.
    """
    return catalog.list_attributes_cached(db, _serialize, skip, limit)

@router.get("/types", response_model=List[str])
async def get_attribute_types():
    """List the supported attribute types."""
    return [t.value for t in AttributeType]

@router.get("/{attribute_id}", response_model=AttributeWithOptions)
async def get_attribute(
    attribute_id: int,
    db: Session = Depends(deps.get_db)
):
    """
    Get a global attribute with its options.
    """
    return catalog.get_attribute(db, attribute_id)

@router.post("/", response_model=Attribute, status_code=status.HTTP_201_CREATED)
async def create_attribute(
    attribute: AttributeCreate,
    db: Session = Depends(deps.get_db)
):
    """
    Create a new global attribute.
    """
    return catalog.create_attribute(db, attribute.model_dump())

@router.put("/{attribute_id}", response_model=Attribute)
async def update_attribute(
    attribute_id: int,
    attribute: AttributeUpdate,
    db: Session = Depends(deps.get_db)
):
    """
    Update a global attribute; only the fields sent are changed.
    """
    return catalog.update_attribute(db, attribute_id, attribute.model_dump(exclude_unset=True))

@router.delete("/{attribute_id}")
async def delete_attribute(
    attribute_id: int,
    db: Session = Depends(deps.get_db)
):
    """
    Delete a global attribute together with its category and product attachments.
    """
    catalog.delete_attribute(db, attribute_id)
    return {"message": "Attribute deleted successfully"}

@router.get("/{attribute_id}/options", response_model=List[AttributeOption])
async def get_attribute_options(
    attribute_id: int,
    db: Session = Depends(deps.get_db)
):
    """
    Get the global options of an attribute.
    """
    return catalog.list_attribute_options(db, attribute_id)

@router.post("/{attribute_id}/options", response_model=AttributeOption, status_code=status.HTTP_201_CREATED)
async def create_attribute_option(
    attribute_id: int,
    option: AttributeOptionCreate,
    db: Session = Depends(deps.get_db)
):
    """
    Add a global option to an enumerated attribute.
    """
    return catalog.create_attribute_option(db, attribute_id, option.model_dump(exclude_unset=True))

@router.put("/{attribute_id}/options/{option_id}", response_model=AttributeOption)
async def update_attribute_option(
    attribute_id: int,
    option_id: int,
    option: AttributeOptionUpdate,
    db: Session = Depends(deps.get_db)
):
    """
    Update a global option.
    """
    return catalog.update_attribute_option(db, attribute_id, option_id, option.model_dump(exclude_unset=True))

@router.delete("/{attribute_id}/options/{option_id}")
async def delete_attribute_option(
    attribute_id: int,
    option_id: int,
    db: Session = Depends(deps.get_db)
):
    """
    Delete a global option.
    """
    catalog.delete_attribute_option(db, attribute_id, option_id)
    return {"message": "Attribute option deleted successfully"}
