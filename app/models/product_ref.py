"""Product reference columns shared by group and excluded product lists."""
from sqlalchemy import Column, String, Text


class ProductRefMixin:
    """Columns of a ProductRef value object (opaque platform product handle)."""

    product_id = Column(String(255), nullable=False)
    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=True)
    featured_image_url = Column(String(2048), nullable=True)
    featured_image_alt = Column(String(500), nullable=True)

    @staticmethod
    def values_from_ref(ref):
        """Column values for a normalized product dict."""
        image = ref.get('featuredImage') or {}
        return {
            'product_id': ref['productId'],
            'title': ref['title'],
            'description': ref.get('description') or None,
            'featured_image_url': image.get('url'),
            'featured_image_alt': image.get('altText'),
        }

    @classmethod
    def from_ref(cls, ref, **extra):
        """Build a row from a normalized product dict."""
        return cls(**cls.values_from_ref(ref), **extra)

    def to_ref(self):
        """Serialize as the public ProductRef shape."""
        data = {
            'productId': self.product_id,
            'title': self.title,
            'description': self.description or '',
        }
        if self.featured_image_url or self.featured_image_alt:
            data['featuredImage'] = {
                'url': self.featured_image_url,
                'altText': self.featured_image_alt,
            }
        return data
