"""Product assigned to a discount group."""
from sqlalchemy import Column, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base, BigIntPK
from app.models.product_ref import ProductRefMixin


class GroupProduct(ProductRefMixin, Base):
    """Discounted product within one group, unique by product_id."""

    __tablename__ = 'group_product'
    __table_args__ = (
        UniqueConstraint('group_id', 'product_id', name='uq_group_product'),
        {'sqlite_autoincrement': True},
    )

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    group_id = Column(
        BigIntPK,
        ForeignKey('discount_group.id', ondelete='CASCADE'),
        nullable=False,
        index=True
    )
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    group = relationship('DiscountGroup', back_populates='products')

    def __repr__(self):
        return f"<GroupProduct(group_id={self.group_id}, product_id='{self.product_id}')>"
