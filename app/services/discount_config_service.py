"""
Group discount configuration service.

Each operation validates its whole input before touching the store, then runs
exactly one store primitive. Callers commit (or roll back) the session.
"""
import json
import logging
from typing import Any, Dict, List, Optional, Tuple

from flask import current_app

from app.exceptions import NotFoundError, PlatformSyncError, ValidationError
from app.models import DiscountConfiguration
from app.services import discount_store
from app.services.discount_payloads import (
    MISSING, normalize_group, normalize_groups, normalize_products, require_shop_id
)
from app.services.platform_client import PlatformAPIError, PlatformClient

logger = logging.getLogger(__name__)

CONFIGURATION_NOT_FOUND = 'Configuration not found for this shop'


def fetch_configuration(session, shop_id: str) -> Tuple[Dict[str, Any], bool]:
    """
    Return (document, found). An unknown shop yields the empty shape and
    nothing is persisted.
    """
    shop_id = require_shop_id(shop_id)
    configuration = discount_store.get(session, shop_id)
    if configuration is None:
        return DiscountConfiguration.empty_dict(shop_id), False

    logger.info(
        f"[CONFIG] GET {shop_id}: {len(configuration.groups)} groups, "
        f"{len(configuration.excluded_products)} excluded products"
    )
    return configuration.to_dict(), True


def replace_configuration(session, shop_id: str, groups: Any, excluded_products: Any = MISSING) -> DiscountConfiguration:
    """Full replace of the groups array (and excluded products when sent)."""
    shop_id = require_shop_id(shop_id)
    normalized_groups = normalize_groups(groups)

    normalized_excluded = None
    if excluded_products is not MISSING:
        if not isinstance(excluded_products, list):
            raise ValidationError('Excluded products must be an array')
        normalized_excluded = normalize_products(excluded_products, label='Excluded products')

    return discount_store.upsert_replace(session, shop_id, normalized_groups, normalized_excluded)


def add_group(session, shop_id: str, group: Any) -> DiscountConfiguration:
    """Append a single group; its name must not clash with an existing group."""
    shop_id = require_shop_id(shop_id)
    normalized = normalize_group(group, 0)
    return discount_store.add_group(session, shop_id, normalized)


def delete_group(session, shop_id: str, group_id: str) -> DiscountConfiguration:
    """Idempotent group removal; 404 only when the shop has no configuration."""
    shop_id = require_shop_id(shop_id)
    group_id = _require_path_id(group_id, 'Group ID')

    configuration = discount_store.remove_group(session, shop_id, group_id)
    if configuration is None:
        raise NotFoundError(CONFIGURATION_NOT_FOUND)
    return configuration


def replace_excluded_products(session, shop_id: str, excluded_products: Any) -> DiscountConfiguration:
    """Wholesale replace of the excluded products list."""
    shop_id = require_shop_id(shop_id)
    products = normalize_products(excluded_products, label='Excluded products')
    return discount_store.replace_excluded_products(session, shop_id, products)


def add_excluded_products(session, shop_id: str, excluded_products: Any) -> DiscountConfiguration:
    """Union products into the excluded list."""
    shop_id = require_shop_id(shop_id)
    products = normalize_products(excluded_products, label='Excluded products')
    return discount_store.add_excluded_products(session, shop_id, products)


def remove_excluded_product(session, shop_id: str, product_id: str) -> DiscountConfiguration:
    shop_id = require_shop_id(shop_id)
    product_id = _require_path_id(product_id, 'Product ID')

    configuration = discount_store.remove_excluded_product(session, shop_id, product_id)
    if configuration is None:
        raise NotFoundError(CONFIGURATION_NOT_FOUND)
    return configuration


def add_products_to_group(session, shop_id: str, group_id: str, products: Any) -> DiscountConfiguration:
    """Union products (each with productId and title) into one group."""
    shop_id = require_shop_id(shop_id)
    group_id = _require_path_id(group_id, 'Group ID')
    normalized = normalize_products(products, label='Products', strict=True)

    configuration = discount_store.add_products_to_group(session, shop_id, group_id, normalized)
    if configuration is None:
        raise NotFoundError(CONFIGURATION_NOT_FOUND)
    return configuration


def remove_product_from_group(session, shop_id: str, group_id: str, product_id: str) -> DiscountConfiguration:
    shop_id = require_shop_id(shop_id)
    group_id = _require_path_id(group_id, 'Group ID')
    product_id = _require_path_id(product_id, 'Product ID')

    configuration = discount_store.remove_product_from_group(session, shop_id, group_id, product_id)
    if configuration is None:
        raise NotFoundError(CONFIGURATION_NOT_FOUND)
    return configuration


def sync_to_platform(
    shop_id: str,
    groups: Any,
    excluded_products: Any,
    access_token: Optional[str],
    shop_domain: Optional[str] = None,
    client: Optional[PlatformClient] = None
) -> List[Dict[str, Any]]:
    """
    Publish {groups, excludedProducts} as one JSON metafield on the shop.

    Pushes the request payload as-is; the local store is not read or written,
    so the published value can differ from what is stored here. No retries.
    """
    if not access_token:
        raise PlatformSyncError('Access token is required', status_code=400)
    shop_id = require_shop_id(shop_id)
    if groups is None:
        groups = []
    if excluded_products is None:
        excluded_products = []
    if not isinstance(groups, list):
        raise ValidationError('Groups must be an array')
    if not isinstance(excluded_products, list):
        raise ValidationError('Excluded products must be an array')

    config = current_app.config
    if client is None:
        shop_domain = (shop_domain or config.get('PLATFORM_SHOP_DOMAIN') or '').strip()
        if not shop_domain:
            raise ValidationError('Shop domain is required')
        client = PlatformClient(
            shop_domain,
            access_token,
            api_version=config.get('PLATFORM_API_VERSION', '2024-10'),
            timeout=config.get('PLATFORM_TIMEOUT', 10)
        )

    value = json.dumps({'groups': groups, 'excludedProducts': excluded_products})

    try:
        return client.set_metafield(
            owner_id=shop_id,
            namespace=config.get('METAFIELD_NAMESPACE', 'custom'),
            key=config.get('METAFIELD_KEY', 'discountconfigdata'),
            value=value
        )
    except PlatformAPIError as e:
        status_code = 400 if e.user_error else 500
        raise PlatformSyncError(e.message, status_code=status_code, errors=e.errors)


def _require_path_id(value: Optional[str], label: str) -> str:
    value = (value or '').strip()
    if not value:
        raise ValidationError(f'{label} is required')
    return value
