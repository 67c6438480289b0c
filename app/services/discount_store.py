"""
Configuration store for per-shop discount configurations.

Keyed by shop id, one DiscountConfiguration per shop. Every mutation goes
through ``apply_patch`` which resolves the configuration (optionally creating
it), runs the change, touches ``updated_at`` and flushes. Nothing here
commits: the caller owns the transaction.

Invariants are checked twice: ``validate_configuration`` before writing, and
the table constraints (unique group names/ids per configuration, unique
product ids per list, percentage range) as the final backstop.
"""
import logging
import math
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError

from app.exceptions import ConfigurationValidationError, NotFoundError
from app.models import (
    DiscountConfiguration, DiscountGroup, GroupProduct, ExcludedProduct, group_name_key
)

logger = logging.getLogger(__name__)


def _utcnow():
    return datetime.now(timezone.utc)


def _insert_ignore(session, model, rows: List[Dict[str, Any]], index_elements: List[str]) -> None:
    """
    INSERT ... ON CONFLICT DO NOTHING.

    Gives set-union semantics in one statement, so concurrent writers adding
    to the same list never overwrite each other.
    """
    if not rows:
        return

    dialect = session.get_bind().dialect.name
    if dialect == 'postgresql':
        from sqlalchemy.dialects.postgresql import insert
    elif dialect == 'sqlite':
        from sqlalchemy.dialects.sqlite import insert
    else:
        raise NotImplementedError(f"Unsupported database dialect: {dialect}")

    stmt = insert(model.__table__).values(rows).on_conflict_do_nothing(index_elements=index_elements)
    session.execute(stmt)


def validate_configuration(groups: List[Dict[str, Any]], excluded_products: Optional[List[Dict[str, Any]]] = None) -> List[str]:
    """Return every invariant the given configuration violates."""
    errors = []

    for group in groups:
        name = (group.get('group') or '').strip()
        if not name:
            errors.append('Group name is required')
        percentage = group.get('percentage')
        if percentage is None:
            errors.append('Discount percentage is required')
        elif not math.isfinite(percentage):
            errors.append('Discount percentage must be a finite number')
        elif percentage < 0:
            errors.append('Percentage cannot be negative')
        elif percentage > 100:
            errors.append('Percentage cannot exceed 100')
        errors.extend(_validate_products(group.get('discounted_products') or [], f'group "{name}"'))

    names = [group_name_key(group.get('group')) for group in groups]
    if len(names) != len(set(names)):
        errors.append('Group names must be unique')

    ids = [group['id'] for group in groups if group.get('id')]
    if len(ids) != len(set(ids)):
        errors.append('Group ids must be unique')

    if excluded_products:
        errors.extend(_validate_products(excluded_products, 'excluded products'))

    return errors


def _validate_products(products: List[Dict[str, Any]], where: str) -> List[str]:
    errors = []
    for product in products:
        if not product.get('productId'):
            errors.append('Product ID is required')
        if not product.get('title'):
            errors.append('Product title is required')
    product_ids = [product.get('productId') for product in products]
    if len(product_ids) != len(set(product_ids)):
        errors.append(f'Product IDs must be unique in {where}')
    return errors


def _raise_if_invalid(groups, excluded_products=None):
    errors = validate_configuration(groups, excluded_products)
    if errors:
        logger.warning(f"[STORE] Rejected configuration: {errors}")
        raise ConfigurationValidationError(errors)


def get(session, shop_id: str) -> Optional[DiscountConfiguration]:
    """Exact-match lookup on the trimmed shop id."""
    return session.query(DiscountConfiguration).filter(
        DiscountConfiguration.shop_id == shop_id.strip()
    ).first()


def _get_or_create(session, shop_id: str) -> DiscountConfiguration:
    configuration = get(session, shop_id)
    if configuration is not None:
        return configuration

    # Concurrent first writes for the same shop both land on the same row
    _insert_ignore(session, DiscountConfiguration, [{'shop_id': shop_id.strip()}], ['shop_id'])
    logger.info(f"[STORE] Created configuration for shop {shop_id}")
    return get(session, shop_id)


def apply_patch(
    session,
    shop_id: str,
    patch_fn: Callable[[DiscountConfiguration], None],
    create_if_missing: bool = False
) -> Optional[DiscountConfiguration]:
    """
    Apply ``patch_fn`` to the shop's configuration.

    Returns None when the configuration does not exist and
    ``create_if_missing`` is False. Constraint violations raised while
    flushing surface as ConfigurationValidationError.
    """
    if create_if_missing:
        configuration = _get_or_create(session, shop_id)
    else:
        configuration = get(session, shop_id)
        if configuration is None:
            return None

    try:
        patch_fn(configuration)
        configuration.updated_at = _utcnow()
        session.flush()
    except IntegrityError as e:
        logger.warning(f"[STORE] Constraint violation for shop {shop_id}: {e.orig}")
        raise ConfigurationValidationError([_describe_integrity_error(e)])

    # Bulk statements bypass the identity map
    session.expire_all()
    return configuration


def _describe_integrity_error(error: IntegrityError) -> str:
    detail = str(error.orig)
    if 'uq_discount_group_name' in detail or 'name_key' in detail:
        return 'Group names must be unique'
    if 'uq_discount_group_uid' in detail or 'group_uid' in detail:
        return 'Group ids must be unique'
    if 'product_id' in detail or 'uq_group_product' in detail or 'uq_excluded_product' in detail:
        return 'Product IDs must be unique'
    if 'percentage' in detail:
        return 'Discount percentage must be between 0 and 100'
    return 'Configuration violates a storage constraint'


def _new_group(configuration, group: Dict[str, Any], products, created_at=None) -> DiscountGroup:
    row = DiscountGroup(
        configuration_id=configuration.id,
        group_uid=group.get('id') or uuid.uuid4().hex,
        name=group['group'],
        percentage=group['percentage'],
    )
    if created_at is not None:
        row.created_at = created_at
    row.products = [GroupProduct.from_ref(product) for product in products]
    return row


def _replace_excluded(session, configuration, products: List[Dict[str, Any]]) -> None:
    session.execute(
        delete(ExcludedProduct).where(ExcludedProduct.configuration_id == configuration.id)
    )
    _insert_ignore(
        session,
        ExcludedProduct,
        [dict(ExcludedProduct.values_from_ref(p), configuration_id=configuration.id) for p in products],
        ['configuration_id', 'product_id']
    )


def upsert_replace(
    session,
    shop_id: str,
    groups: List[Dict[str, Any]],
    excluded_products: Optional[List[Dict[str, Any]]] = None
) -> DiscountConfiguration:
    """
    Replace the groups array wholesale (and excluded products when given).

    Groups carrying an existing id keep it, along with their created_at and,
    when their payload has no ``discounted_products``, their product list.
    """
    _raise_if_invalid(groups, excluded_products)

    def patch(configuration):
        existing = {
            row.group_uid: (row.created_at, [product.to_ref() for product in row.products])
            for row in configuration.groups
        }

        # Products go with their group (ON DELETE CASCADE)
        session.execute(
            delete(DiscountGroup).where(DiscountGroup.configuration_id == configuration.id)
        )

        for group in groups:
            created_at, carried = existing.get(group.get('id'), (None, []))
            products = group['discounted_products'] if group.get('discounted_products') is not None else carried
            session.add(_new_group(configuration, group, products, created_at))

        if excluded_products is not None:
            _replace_excluded(session, configuration, excluded_products)

    configuration = apply_patch(session, shop_id, patch, create_if_missing=True)
    logger.info(
        f"[STORE] Replaced configuration for shop {shop_id}: "
        f"{len(groups)} groups, "
        f"{'unchanged' if excluded_products is None else len(excluded_products)} excluded products"
    )
    return configuration


def add_group(session, shop_id: str, group: Dict[str, Any]) -> DiscountConfiguration:
    """Append one group, creating the configuration if absent."""
    _raise_if_invalid([group])

    def patch(configuration):
        errors = []
        key = group_name_key(group['group'])
        if any(row.name_key == key for row in configuration.groups):
            errors.append('Group names must be unique')
        if group.get('id') and any(row.group_uid == group['id'] for row in configuration.groups):
            errors.append('Group ids must be unique')
        if errors:
            raise ConfigurationValidationError(errors)
        session.add(_new_group(configuration, group, group.get('discounted_products') or []))

    return apply_patch(session, shop_id, patch, create_if_missing=True)


def remove_group(session, shop_id: str, group_id: str) -> Optional[DiscountConfiguration]:
    """Remove a group and its products; no-op if the group id is unknown."""
    def patch(configuration):
        session.execute(
            delete(DiscountGroup).where(
                DiscountGroup.configuration_id == configuration.id,
                DiscountGroup.group_uid == group_id
            )
        )

    return apply_patch(session, shop_id, patch)


def replace_excluded_products(session, shop_id: str, products: List[Dict[str, Any]]) -> DiscountConfiguration:
    """Wholesale replace of the excluded list, creating the configuration if absent."""
    errors = _validate_products(products, 'excluded products')
    if errors:
        raise ConfigurationValidationError(errors)

    return apply_patch(
        session,
        shop_id,
        lambda configuration: _replace_excluded(session, configuration, products),
        create_if_missing=True
    )


def add_excluded_products(session, shop_id: str, products: List[Dict[str, Any]]) -> DiscountConfiguration:
    """Union products into the excluded list, creating the configuration if absent."""
    errors = _validate_products(products, 'excluded products')
    if errors:
        raise ConfigurationValidationError(errors)

    def patch(configuration):
        _insert_ignore(
            session,
            ExcludedProduct,
            [dict(ExcludedProduct.values_from_ref(p), configuration_id=configuration.id) for p in products],
            ['configuration_id', 'product_id']
        )

    return apply_patch(session, shop_id, patch, create_if_missing=True)


def remove_excluded_product(session, shop_id: str, product_id: str) -> Optional[DiscountConfiguration]:
    """Remove one excluded product; no-op if absent."""
    def patch(configuration):
        session.execute(
            delete(ExcludedProduct).where(
                ExcludedProduct.configuration_id == configuration.id,
                ExcludedProduct.product_id == product_id
            )
        )

    return apply_patch(session, shop_id, patch)


def _require_group(session, configuration, group_id: str) -> DiscountGroup:
    group = session.query(DiscountGroup).filter(
        DiscountGroup.configuration_id == configuration.id,
        DiscountGroup.group_uid == group_id
    ).first()
    if group is None:
        raise NotFoundError('Group not found')
    return group


def add_products_to_group(session, shop_id: str, group_id: str, products: List[Dict[str, Any]]) -> Optional[DiscountConfiguration]:
    """
    Union products into a group's list, de-duplicated by product id.

    Returns None if the shop has no configuration; raises NotFoundError
    if the group does not exist.
    """
    errors = _validate_products(products, 'group products')
    if errors:
        raise ConfigurationValidationError(errors)

    def patch(configuration):
        group = _require_group(session, configuration, group_id)
        _insert_ignore(
            session,
            GroupProduct,
            [dict(GroupProduct.values_from_ref(p), group_id=group.id) for p in products],
            ['group_id', 'product_id']
        )
        group.updated_at = _utcnow()

    return apply_patch(session, shop_id, patch)


def remove_product_from_group(session, shop_id: str, group_id: str, product_id: str) -> Optional[DiscountConfiguration]:
    """Remove one product from one group; no-op if the product is absent."""
    def patch(configuration):
        group = _require_group(session, configuration, group_id)
        session.execute(
            delete(GroupProduct).where(
                GroupProduct.group_id == group.id,
                GroupProduct.product_id == product_id
            )
        )
        group.updated_at = _utcnow()

    return apply_patch(session, shop_id, patch)
