from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, Text, JSON, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship
from catalog_options.db.session import Base
from catalog_options.db.types import Money, TimestampMixin

class ProductAttribute(TimestampMixin, Base):
    __tablename__ = "product_attributes"
    __table_args__ = (
        UniqueConstraint("product_id", "attribute_id", name="uq_product_attributes_product_attr"),
    )

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    attribute_id = Column(Integer, ForeignKey("attributes.id", ondelete="CASCADE"), nullable=False, index=True)
    category_attribute_id = Column(
        Integer, ForeignKey("category_attributes.id", ondelete="SET NULL"), nullable=True, index=True
    )

    # NULL means "inherit from the category attribute, then the global attribute"
    override_display_name = Column(String(100), nullable=True)
    override_description = Column(Text, nullable=True)
    is_required = Column(Boolean, nullable=True)
    sort_order = Column(Integer, nullable=True)

    product = relationship("Product", back_populates="attributes")
    attribute = relationship("GlobalAttribute", back_populates="product_attributes")
    category_attribute = relationship("CategoryAttribute", back_populates="product_attributes")
    options = relationship(
        "ProductAttributeOption",
        back_populates="product_attribute",
        cascade="all, delete-orphan",
        order_by="ProductAttributeOption.sort_order",
    )


class ProductAttributeOption(TimestampMixin, Base):
    __tablename__ = "product_attribute_options"
    __table_args__ = (
        UniqueConstraint("product_attribute_id", "value", name="uq_product_attribute_options_value"),
        CheckConstraint(
            "base_option_id IS NULL OR category_option_id IS NULL",
            name="ck_product_attribute_options_single_link",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    product_attribute_id = Column(
        Integer, ForeignKey("product_attributes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    base_option_id = Column(Integer, ForeignKey("attribute_options.id", ondelete="SET NULL"), nullable=True)
    category_option_id = Column(
        Integer, ForeignKey("category_attribute_options.id", ondelete="SET NULL"), nullable=True
    )
    value = Column(String(255), nullable=False)
    display_value = Column(String(255), nullable=False)
    sort_order = Column(Integer, nullable=False, default=0)
    price_adjustment = Money(nullable=True)
    option_metadata = Column("metadata", JSON, nullable=True)

    product_attribute = relationship("ProductAttribute", back_populates="options")
    base_option = relationship("GlobalAttributeOption")
    category_option = relationship("CategoryAttributeOption")

    @property
    def is_custom(self) -> bool:
        return self.base_option_id is None and self.category_option_id is None
