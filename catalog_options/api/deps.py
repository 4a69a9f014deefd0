from typing import Generator, Literal, Optional
from fastapi import Query
from sqlalchemy.orm import Session
from catalog_options.db.session import SessionLocal

def get_db() -> Generator[Session, None, None]:
    try:
        db = SessionLocal()
        yield db
    finally:
        db.close()

def get_delete_policy(
    policy: Optional[Literal["detach", "cascade"]] = Query(
        None,
        description="How product attributes sourced from the category attribute are handled; "
        "defaults to CATEGORY_ATTRIBUTE_DELETE_POLICY",
    )
) -> Optional[str]:
    return policy
