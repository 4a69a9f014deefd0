from sqlalchemy import Column, Integer, String, ForeignKey, Boolean
from sqlalchemy.orm import relationship
from catalog_options.db.session import Base
from catalog_options.db.types import Money, TimestampMixin

class Product(TimestampMixin, Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    description = Column(String, nullable=True)
    base_price = Money(nullable=False, default=0)
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True)
    is_active = Column(Boolean, nullable=False, default=True)

    category = relationship("Category", back_populates="products")
    attributes = relationship(
        "ProductAttribute",
        back_populates="product",
        cascade="all, delete-orphan",
    )
    attribute_values = relationship(
        "ProductAttributeValue",
        back_populates="product",
        cascade="all, delete-orphan",
    )
    combinations = relationship(
        "ProductAttributeCombination",
        back_populates="product",
        cascade="all, delete-orphan",
    )
