"""Main blueprint with API banner and health check endpoints."""
from datetime import datetime, timezone

from flask import Blueprint, jsonify
from sqlalchemy import text
from app.database import get_session

main_bp = Blueprint('main', __name__)


@main_bp.route('/')
def index():
    """API banner."""
    return jsonify({
        'success': True,
        'message': 'Group Discount API is running successfully!',
        'timestamp': datetime.now(timezone.utc).isoformat()
    }), 200


@main_bp.route('/health')
def health():
    """
    Health check endpoint that validates database connection.

    Returns:
        200: Healthy (DB connected)
        500: Unhealthy (DB error)
    """
    try:
        session = get_session()
        # Execute simple query to test connection
        row = session.execute(text("SELECT 1 as health_check")).fetchone()

        if row and row[0] == 1:
            return jsonify({
                'status': 'healthy',
                'database': 'connected',
                'message': 'Database connection successful'
            }), 200
        return jsonify({
            'status': 'unhealthy',
            'database': 'error',
            'message': 'Unexpected query result'
        }), 500

    except Exception as e:
        return jsonify({
            'status': 'unhealthy',
            'database': 'disconnected',
            'error': str(e),
            'message': 'Failed to connect to database'
        }), 500


@main_bp.route('/health/cache')
def health_cache():
    """
    Cache health check endpoint.

    Never returns 500: the cache is optional and the API keeps serving
    from the database when Redis is down.
    """
    from app.services.cache_service import get_cache
    cache = get_cache()

    if cache.is_available():
        return jsonify({'status': 'ok', 'cache': 'connected'}), 200
    return jsonify({
        'status': 'degraded',
        'cache': 'unavailable',
        'message': 'Cache unavailable, serving from database'
    }), 200
