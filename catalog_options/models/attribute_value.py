from sqlalchemy import Column, Integer, Boolean, ForeignKey, Text, DateTime, Float
from sqlalchemy.orm import relationship
from catalog_options.db.session import Base
from catalog_options.db.types import Money, TimestampMixin

# Value slots in declaration order; exactly one is populated per row.
VALUE_SLOTS = ("option_id", "text_value", "number_value", "date_value", "boolean_value")

class ProductAttributeValue(TimestampMixin, Base):
    __tablename__ = "product_attribute_values"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    attribute_id = Column(Integer, ForeignKey("attributes.id", ondelete="CASCADE"), nullable=False, index=True)

    option_id = Column(Integer, ForeignKey("attribute_options.id", ondelete="CASCADE"), nullable=True, index=True)
    text_value = Column(Text, nullable=True)
    number_value = Column(Float, nullable=True)
    date_value = Column(DateTime, nullable=True)
    boolean_value = Column(Boolean, nullable=True)

    price_adjustment = Money(nullable=True)
    sort_order = Column(Integer, nullable=False, default=0)

    product = relationship("Product", back_populates="attribute_values")
    attribute = relationship("GlobalAttribute")
    option = relationship("GlobalAttributeOption")

    @property
    def populated_slots(self):
        return [slot for slot in VALUE_SLOTS if getattr(self, slot) is not None]

    @property
    def value(self):
        """The single populated slot, rendered for display."""
        if self.option is not None:
            return self.option.value
        for slot in VALUE_SLOTS[1:]:
            current = getattr(self, slot)
            if current is not None:
                return current
        return None
