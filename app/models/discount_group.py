"""Discount group model - a named tier with a percentage."""
from sqlalchemy import (
    Column, String, Float, DateTime, ForeignKey, UniqueConstraint, CheckConstraint
)
from sqlalchemy.orm import relationship, validates
from sqlalchemy.sql import func
from app.database import Base, BigIntPK


def group_name_key(name):
    """Comparison key for group names (case-insensitive, trimmed)."""
    return (name or '').strip().lower()


class DiscountGroup(Base):
    """Discount group owned by one configuration."""

    __tablename__ = 'discount_group'
    __table_args__ = (
        UniqueConstraint('configuration_id', 'group_uid', name='uq_discount_group_uid'),
        UniqueConstraint('configuration_id', 'name_key', name='uq_discount_group_name'),
        CheckConstraint('percentage >= 0 AND percentage <= 100', name='ck_discount_group_percentage'),
        {'sqlite_autoincrement': True},
    )

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    configuration_id = Column(
        BigIntPK,
        ForeignKey('discount_configuration.id', ondelete='CASCADE'),
        nullable=False,
        index=True
    )
    group_uid = Column(String(64), nullable=False)  # Public id, stable across replaces
    name = Column(String(255), nullable=False)
    name_key = Column(String(255), nullable=False)
    percentage = Column(Float, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    configuration = relationship('DiscountConfiguration', back_populates='groups')
    products = relationship(
        'GroupProduct',
        back_populates='group',
        order_by='GroupProduct.id',
        cascade='all, delete-orphan',
        passive_deletes=True
    )

    @validates('name')
    def _set_name_key(self, key, value):
        value = (value or '').strip()
        self.name_key = group_name_key(value)
        return value

    def __repr__(self):
        return f"<DiscountGroup(id={self.id}, uid='{self.group_uid}', name='{self.name}')>"

    def to_dict(self):
        return {
            'id': self.group_uid,
            'group': self.name,
            'percentage': self.percentage,
            'discounted_products': [product.to_ref() for product in self.products],
            'createdAt': self.created_at.isoformat() if self.created_at else None,
            'updatedAt': self.updated_at.isoformat() if self.updated_at else None,
        }
