from sqlalchemy import Column, Integer, String, ForeignKey
from sqlalchemy.orm import relationship
from catalog_options.db.session import Base
from catalog_options.db.types import TimestampMixin

class Category(TimestampMixin, Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, index=True)
    description = Column(String, nullable=True)
    parent_id = Column(Integer, ForeignKey("categories.id"), nullable=True)

    parent = relationship("Category", remote_side=[id], backref="children")
    products = relationship("Product", back_populates="category")
    attributes = relationship(
        "CategoryAttribute",
        back_populates="category",
        cascade="all, delete-orphan",
    )
