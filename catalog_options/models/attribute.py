import enum
from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, Text, JSON, Enum, UniqueConstraint
from sqlalchemy.orm import relationship
from catalog_options.db.session import Base
from catalog_options.db.types import TimestampMixin


class AttributeType(str, enum.Enum):
    TEXT = "text"
    NUMBER = "number"
    SELECT = "select"
    MULTISELECT = "multiselect"
    COLOR = "color"
    SIZE = "size"
    DATE = "date"
    BOOLEAN = "boolean"

    @property
    def is_enumerated(self) -> bool:
        return self in ENUMERATED_TYPES


ENUMERATED_TYPES = frozenset({
    AttributeType.SELECT,
    AttributeType.MULTISELECT,
    AttributeType.COLOR,
    AttributeType.SIZE,
})


class GlobalAttribute(TimestampMixin, Base):
    __tablename__ = "attributes"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, unique=True, index=True)
    display_name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    attribute_type = Column(
        Enum(AttributeType, native_enum=False, length=20, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=AttributeType.SELECT,
    )
    is_filterable = Column(Boolean, nullable=False, default=False)
    is_swatch = Column(Boolean, nullable=False, default=False)
    is_required = Column(Boolean, nullable=False, default=False)
    is_variant = Column(Boolean, nullable=False, default=False)
    is_comparable = Column(Boolean, nullable=False, default=False)
    display_in_product_summary = Column(Boolean, nullable=False, default=False)
    sort_order = Column(Integer, nullable=False, default=0)
    validation_rules = Column(JSON, nullable=True)

    options = relationship(
        "GlobalAttributeOption",
        back_populates="attribute",
        cascade="all, delete-orphan",
        order_by="GlobalAttributeOption.sort_order",
    )
    category_attributes = relationship(
        "CategoryAttribute",
        back_populates="attribute",
        cascade="all, delete-orphan",
    )
    product_attributes = relationship(
        "ProductAttribute",
        back_populates="attribute",
        cascade="all, delete-orphan",
    )


class GlobalAttributeOption(TimestampMixin, Base):
    __tablename__ = "attribute_options"
    __table_args__ = (
        UniqueConstraint("attribute_id", "value", name="uq_attribute_options_attr_value"),
    )

    id = Column(Integer, primary_key=True, index=True)
    attribute_id = Column(Integer, ForeignKey("attributes.id", ondelete="CASCADE"), nullable=False, index=True)
    value = Column(String(255), nullable=False)
    display_value = Column(String(255), nullable=False)
    sort_order = Column(Integer, nullable=False, default=0)
    option_metadata = Column("metadata", JSON, nullable=True)

    attribute = relationship("GlobalAttribute", back_populates="options")
