from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, Text, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from catalog_options.db.session import Base
from catalog_options.db.types import Money, TimestampMixin

class CategoryAttribute(TimestampMixin, Base):
    __tablename__ = "category_attributes"
    __table_args__ = (
        UniqueConstraint("category_id", "attribute_id", name="uq_category_attributes_category_attr"),
    )

    id = Column(Integer, primary_key=True, index=True)
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="CASCADE"), nullable=False, index=True)
    attribute_id = Column(Integer, ForeignKey("attributes.id", ondelete="CASCADE"), nullable=False, index=True)

    # NULL means "inherit from the global attribute"
    override_display_name = Column(String(100), nullable=True)
    override_description = Column(Text, nullable=True)
    is_required = Column(Boolean, nullable=True)
    is_filterable = Column(Boolean, nullable=True)
    sort_order = Column(Integer, nullable=True)

    category = relationship("Category", back_populates="attributes")
    attribute = relationship("GlobalAttribute", back_populates="category_attributes")
    options = relationship(
        "CategoryAttributeOption",
        back_populates="category_attribute",
        cascade="all, delete-orphan",
        order_by="CategoryAttributeOption.sort_order",
    )
    product_attributes = relationship("ProductAttribute", back_populates="category_attribute")


class CategoryAttributeOption(TimestampMixin, Base):
    __tablename__ = "category_attribute_options"
    __table_args__ = (
        UniqueConstraint("category_attribute_id", "value", name="uq_category_attribute_options_value"),
    )

    id = Column(Integer, primary_key=True, index=True)
    category_attribute_id = Column(
        Integer, ForeignKey("category_attributes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    base_option_id = Column(Integer, ForeignKey("attribute_options.id", ondelete="SET NULL"), nullable=True)
    value = Column(String(255), nullable=False)
    display_value = Column(String(255), nullable=False)
    sort_order = Column(Integer, nullable=False, default=0)
    price_adjustment = Money(nullable=True)
    option_metadata = Column("metadata", JSON, nullable=True)

    category_attribute = relationship("CategoryAttribute", back_populates="options")
    base_option = relationship("GlobalAttributeOption")
