"""Group discount configuration endpoints (JSON API)."""
from typing import Any, Dict, Tuple

from flask import Blueprint, Response, current_app, jsonify, request

from app.database import get_session
from app.services import discount_config_service as service
from app.services.cache_service import get_cache
from app.services.discount_payloads import MISSING, require_json_object, require_shop_id

group_discount_bp = Blueprint('group_discount', __name__, url_prefix='/api/group-discount')


def _json_body(allowed_fields=None) -> Dict[str, Any]:
    """Parse the request body as a JSON object (None when empty or not JSON)."""
    return require_json_object(request.get_json(silent=True), allowed_fields)


def _respond(message: str, configuration, status: int = 200) -> Tuple[Response, int]:
    return jsonify({
        'success': True,
        'message': message,
        'data': configuration.to_dict(),
    }), status


def _commit(shop_id: str) -> None:
    """Commit the request transaction and drop the shop's cached document."""
    get_session().commit()
    get_cache().invalidate(shop_id.strip())


@group_discount_bp.route('/sync', methods=['POST'])
def sync_configuration():
    """Publish a configuration to the commerce platform metafield."""
    body = _json_body({'shopId', 'shop', 'groups', 'excludedProducts'})
    metafields = service.sync_to_platform(
        shop_id=body.get('shopId'),
        groups=body.get('groups'),
        excluded_products=body.get('excludedProducts'),
        access_token=request.args.get('token'),
        shop_domain=body.get('shop')
    )
    return jsonify({
        'success': True,
        'message': 'Configuration synced to platform',
        'data': {'metafields': metafields},
    }), 200


@group_discount_bp.route('/<shop_id>', methods=['GET'])
def get_configuration(shop_id: str):
    """Get configuration by shop id (empty shape if none is stored)."""
    shop_id = require_shop_id(shop_id)
    session = get_session()

    def load():
        document, found = service.fetch_configuration(session, shop_id)
        return {'document': document, 'found': found}

    cached = get_cache().fetch(shop_id, load)
    message = (
        'Configuration retrieved successfully' if cached['found']
        else 'No configuration found for this shop'
    )
    return jsonify({
        'success': True,
        'data': cached['document'],
        'message': message,
    }), 200


@group_discount_bp.route('/<shop_id>', methods=['POST'])
def save_configuration(shop_id: str):
    """Create or replace the entire configuration (groups + excluded products)."""
    body = _json_body({'groups', 'excludedProducts'})
    current_app.logger.info(
        f"[CONFIG] POST {shop_id}: groups={len(body['groups']) if isinstance(body.get('groups'), list) else 'n/a'}"
    )
    configuration = service.replace_configuration(
        get_session(),
        shop_id,
        body.get('groups'),
        body.get('excludedProducts', MISSING)
    )
    _commit(shop_id)
    return _respond('Configuration saved successfully', configuration)


@group_discount_bp.route('/<shop_id>/group', methods=['POST'])
def create_group(shop_id: str):
    """Append one group to the configuration."""
    body = _json_body({'id', 'group', 'percentage', 'discounted_products'})
    configuration = service.add_group(get_session(), shop_id, body)
    _commit(shop_id)
    return _respond('Group added successfully', configuration, 201)


@group_discount_bp.route('/<shop_id>/group/<group_id>', methods=['DELETE'])
def delete_group(shop_id: str, group_id: str):
    """Delete a specific group (and its products)."""
    configuration = service.delete_group(get_session(), shop_id, group_id)
    _commit(shop_id)
    return _respond('Group deleted successfully', configuration)


@group_discount_bp.route('/<shop_id>/excluded-products', methods=['POST'])
def replace_excluded_products(shop_id: str):
    """Replace the excluded products list."""
    body = _json_body({'excludedProducts'})
    configuration = service.replace_excluded_products(
        get_session(), shop_id, body.get('excludedProducts')
    )
    _commit(shop_id)
    return _respond('Excluded products updated successfully', configuration)


@group_discount_bp.route('/<shop_id>/excluded-products', methods=['PATCH'])
def add_excluded_products(shop_id: str):
    """Add products to the excluded list, skipping ones already present."""
    body = _json_body({'excludedProducts'})
    configuration = service.add_excluded_products(
        get_session(), shop_id, body.get('excludedProducts')
    )
    _commit(shop_id)
    return _respond('Excluded products added successfully', configuration)


@group_discount_bp.route('/<shop_id>/excluded-product/<path:product_id>', methods=['DELETE'])
def remove_excluded_product(shop_id: str, product_id: str):
    configuration = service.remove_excluded_product(get_session(), shop_id, product_id)
    _commit(shop_id)
    return _respond('Excluded product removed successfully', configuration)


@group_discount_bp.route('/<shop_id>/group/<group_id>/products', methods=['POST'])
def add_group_products(shop_id: str, group_id: str):
    """Add products to a group's discounted products."""
    body = _json_body({'products'})
    configuration = service.add_products_to_group(
        get_session(), shop_id, group_id, body.get('products')
    )
    _commit(shop_id)
    return _respond('Products added to group successfully', configuration)


@group_discount_bp.route('/<shop_id>/group/<group_id>/product/<path:product_id>', methods=['DELETE'])
def remove_group_product(shop_id: str, group_id: str, product_id: str):
    configuration = service.remove_product_from_group(
        get_session(), shop_id, group_id, product_id
    )
    _commit(shop_id)
    return _respond('Product removed from group successfully', configuration)
