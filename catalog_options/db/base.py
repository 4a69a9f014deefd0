# Import every model so Base.metadata is complete for create_all and Alembic
from catalog_options.db.session import Base  # noqa: F401
from catalog_options.models.category import Category  # noqa: F401
from catalog_options.models.product import Product  # noqa: F401
from catalog_options.models.attribute import GlobalAttribute, GlobalAttributeOption  # noqa: F401
from catalog_options.models.category_attribute import CategoryAttribute, CategoryAttributeOption  # noqa: F401
from catalog_options.models.product_attribute import ProductAttribute, ProductAttributeOption  # noqa: F401
from catalog_options.models.attribute_value import ProductAttributeValue  # noqa: F401
from catalog_options.models.combination import ProductAttributeCombination  # noqa: F401
