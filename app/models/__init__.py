"""Models package - exports all SQLAlchemy models."""
from app.models.discount_configuration import DiscountConfiguration
from app.models.discount_group import DiscountGroup, group_name_key
from app.models.group_product import GroupProduct
from app.models.excluded_product import ExcludedProduct

__all__ = [
    'DiscountConfiguration', 'DiscountGroup', 'group_name_key',
    'GroupProduct', 'ExcludedProduct',
]
