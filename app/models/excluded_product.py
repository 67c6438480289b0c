"""Shop-level excluded product."""
from sqlalchemy import Column, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base, BigIntPK
from app.models.product_ref import ProductRefMixin


class ExcludedProduct(ProductRefMixin, Base):
    """Product no discount applies to, independent of any group."""

    __tablename__ = 'excluded_product'
    __table_args__ = (
        UniqueConstraint('configuration_id', 'product_id', name='uq_excluded_product'),
        {'sqlite_autoincrement': True},
    )

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    configuration_id = Column(
        BigIntPK,
        ForeignKey('discount_configuration.id', ondelete='CASCADE'),
        nullable=False,
        index=True
    )
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    configuration = relationship('DiscountConfiguration', back_populates='excluded_products')

    def __repr__(self):
        return f"<ExcludedProduct(configuration_id={self.configuration_id}, product_id='{self.product_id}')>"
