"""
Payment Category Routes
"""

from flask import request, jsonify
import logging

from db_single import get_session
from api_routes import json_error, HANDLED_ERRORS
from fee_helpers import list_categories, create_category, update_category, delete_category

logger = logging.getLogger(__name__)


def register_category_routes(api_bp, require_admin_auth):
    """Register payment category routes to the API blueprint"""

    @api_bp.route('/categories')
    @require_admin_auth
    def categories():
        session_db = get_session()
        try:
            items = list_categories(
                session_db,
                category_type=request.args.get('type'),
                active_only=request.args.get('active', '').lower() == 'true',
            )
            return jsonify({'success': True, 'data': [c.to_dict() for c in items]})
        except HANDLED_ERRORS:
            raise
        except Exception as e:
            logger.error(f"Error listing categories: {e}")
            return json_error('Error fetching categories', 500)
        finally:
            session_db.close()

    @api_bp.route('/categories', methods=['POST'])
    @require_admin_auth
    def category_create():
        data = request.get_json(silent=True) or {}
        session_db = get_session()
        try:
            category = create_category(session_db, data.get('name'), data.get('type'), data.get('description'))
            return jsonify({'success': True, 'message': 'Category created', 'data': category.to_dict()}), 201
        except HANDLED_ERRORS:
            session_db.rollback()
            raise
        except Exception as e:
            session_db.rollback()
            logger.error(f"Error creating category: {e}")
            return json_error('Error creating category', 500)
        finally:
            session_db.close()

    @api_bp.route('/categories/<int:category_id>', methods=['PUT'])
    @require_admin_auth
    def category_update(category_id):
        data = request.get_json(silent=True) or {}
        session_db = get_session()
        try:
            category = update_category(session_db, category_id, data)
            return jsonify({'success': True, 'message': 'Category updated', 'data': category.to_dict()})
        except HANDLED_ERRORS:
            session_db.rollback()
            raise
        except Exception as e:
            session_db.rollback()
            logger.error(f"Error updating category {category_id}: {e}")
            return json_error('Error updating category', 500)
        finally:
            session_db.close()

    @api_bp.route('/categories/<int:category_id>', methods=['DELETE'])
    @require_admin_auth
    def category_delete(category_id):
        session_db = get_session()
        try:
            deleted = delete_category(session_db, category_id)
            return jsonify({'success': True, 'message': 'Category deleted', 'data': deleted})
        except HANDLED_ERRORS:
            session_db.rollback()
            raise
        except Exception as e:
            session_db.rollback()
            logger.error(f"Error deleting category {category_id}: {e}")
            return json_error('Error deleting category', 500)
        finally:
            session_db.close()
