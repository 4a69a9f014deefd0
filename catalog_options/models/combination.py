from sqlalchemy import Column, Integer, String, ForeignKey, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from catalog_options.db.session import Base
from catalog_options.db.types import Money, TimestampMixin

class ProductAttributeCombination(TimestampMixin, Base):
    __tablename__ = "product_attribute_combinations"
    __table_args__ = (
        UniqueConstraint("product_id", "combination_hash", name="uq_product_combinations_hash"),
    )

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    combination_hash = Column(String(1024), nullable=False)
    price_adjustment = Money(nullable=False, default=0)
    # display map: attribute display name -> selected display value
    attributes = Column(JSON, nullable=False, default=dict)

    product = relationship("Product", back_populates="combinations")
