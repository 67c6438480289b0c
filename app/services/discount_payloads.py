"""
Request payload parsing for the group discount endpoints.

Every endpoint accepts product lists either as bare product id strings or as
structured ProductRef objects. Both shapes are converted here into one
canonical dict so the store never branches on payload shape:

    {'productId': str, 'title': str, 'description': str, 'featuredImage': {...}?}
"""
import math
from numbers import Real
from typing import Any, Dict, List, Optional

from app.exceptions import ValidationError
from app.models import group_name_key


# Sentinel for "field not sent" (distinct from an explicit null)
MISSING = object()


def require_shop_id(shop_id: Optional[str]) -> str:
    """Trim and require a shop id."""
    shop_id = (shop_id or '').strip()
    if not shop_id:
        raise ValidationError('Shop ID is required')
    return shop_id


def require_json_object(body: Any, allowed_fields: Optional[set] = None) -> Dict[str, Any]:
    """Request bodies must be JSON objects with only known top-level fields."""
    if body is None:
        body = {}
    if not isinstance(body, dict):
        raise ValidationError('Request body must be a JSON object')
    if allowed_fields is not None:
        unknown = sorted(set(body) - allowed_fields)
        if unknown:
            raise ValidationError(
                'Unknown fields in request body',
                errors=[f'Unknown field "{name}"' for name in unknown]
            )
    return body


def _clean_str(value: Any) -> str:
    if value is None:
        return ''
    if not isinstance(value, (str, int)) or isinstance(value, bool):
        return ''
    return str(value).strip()


def normalize_product(item: Any, index: int, strict: bool = False) -> Dict[str, Any]:
    """
    Convert one product payload into a canonical ProductRef dict.

    A bare string is taken as the product id and doubles as the title.
    With ``strict`` both productId and title must be given explicitly.
    """
    if isinstance(item, str):
        product_id = item.strip()
        if not product_id or strict:
            raise ValidationError(f'Product at index {index} requires productId and title')
        return {'productId': product_id, 'title': product_id, 'description': ''}

    if not isinstance(item, dict):
        raise ValidationError(f'Product at index {index} must be a string or an object')

    product_id = _clean_str(item.get('productId', item.get('id')))
    title = _clean_str(item.get('title'))
    if not product_id or not title:
        raise ValidationError(f'Product at index {index} requires productId and title')

    product = {
        'productId': product_id,
        'title': title,
        'description': item.get('description') if isinstance(item.get('description'), str) else '',
    }

    image = item.get('featuredImage')
    if isinstance(image, dict) and (image.get('url') or image.get('altText')):
        product['featuredImage'] = {
            'url': image.get('url'),
            'altText': image.get('altText'),
        }
    return product


def normalize_products(items: Any, label: str = 'Products', strict: bool = False) -> List[Dict[str, Any]]:
    """Normalize a product list, keeping the first occurrence of each productId."""
    if not isinstance(items, list):
        raise ValidationError(f'{label} must be an array')

    products = []
    seen = set()
    for index, item in enumerate(items):
        product = normalize_product(item, index, strict=strict)
        if product['productId'] in seen:
            continue
        seen.add(product['productId'])
        products.append(product)
    return products


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def normalize_group(item: Any, index: int) -> Dict[str, Any]:
    """Validate one group payload: name, then percentage presence, then range."""
    if not isinstance(item, dict):
        raise ValidationError(f'Group at index {index} must be an object')

    name = item.get('group')
    if not isinstance(name, str) or not name.strip():
        raise ValidationError(f'Group name is required for group at index {index}')
    name = name.strip()

    percentage = item.get('percentage')
    if percentage is None:
        raise ValidationError(f'Discount percentage is required for group "{name}"')
    if isinstance(percentage, str):
        try:
            percentage = float(percentage.strip())
        except ValueError:
            raise ValidationError(f'Discount percentage must be a number for group "{name}"')
    if not _is_number(percentage):
        raise ValidationError(f'Discount percentage must be a number for group "{name}"')
    if not math.isfinite(percentage) or percentage < 0 or percentage > 100:
        raise ValidationError(f'Discount percentage must be between 0 and 100 for group "{name}"')

    group_id = item.get('id', item.get('_id'))
    group_id = _clean_str(group_id) or None

    group = {
        'id': group_id,
        'group': name,
        'percentage': float(percentage),
        'discounted_products': None,
    }
    if item.get('discounted_products') is not None:
        group['discounted_products'] = normalize_products(
            item['discounted_products'],
            label=f'Discounted products of group "{name}"'
        )
    return group


def normalize_groups(items: Any) -> List[Dict[str, Any]]:
    """Validate a full groups array, failing fast on the first bad entry."""
    if not isinstance(items, list):
        raise ValidationError('Groups must be an array')

    groups = [normalize_group(item, index) for index, item in enumerate(items)]

    names = [group_name_key(group['group']) for group in groups]
    if len(names) != len(set(names)):
        raise ValidationError('Duplicate group names are not allowed')
    return groups
