"""Discount configuration model - one per shop."""
from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base, BigIntPK


def _isoformat(value):
    return value.isoformat() if value else None


class DiscountConfiguration(Base):
    """Root aggregate holding a shop's discount groups and excluded products."""

    __tablename__ = 'discount_configuration'
    # Ids are never reused after deletes (keeps insertion order)
    __table_args__ = {'sqlite_autoincrement': True}

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    shop_id = Column(String(255), nullable=False, unique=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships (insertion order == primary key order)
    groups = relationship(
        'DiscountGroup',
        back_populates='configuration',
        order_by='DiscountGroup.id',
        cascade='all, delete-orphan',
        passive_deletes=True
    )
    excluded_products = relationship(
        'ExcludedProduct',
        back_populates='configuration',
        order_by='ExcludedProduct.id',
        cascade='all, delete-orphan',
        passive_deletes=True
    )

    def __repr__(self):
        return f"<DiscountConfiguration(id={self.id}, shop_id='{self.shop_id}')>"

    def to_dict(self):
        return {
            'shopId': self.shop_id,
            'groups': [group.to_dict() for group in self.groups],
            'excludedProducts': [product.to_ref() for product in self.excluded_products],
            'createdAt': _isoformat(self.created_at),
            'updatedAt': _isoformat(self.updated_at),
        }

    @staticmethod
    def empty_dict(shop_id):
        """Zero-value shape returned for shops without a stored configuration."""
        return {
            'shopId': shop_id,
            'groups': [],
            'excludedProducts': [],
        }
