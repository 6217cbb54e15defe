"""
JSON API Blueprint
Creates the /api blueprint, its auth guard and error mapping, and registers
the auth, student, finance and category routes on it
"""

from functools import wraps
from flask import Blueprint, jsonify, current_app
from flask_login import current_user
import logging

from fee_helpers import ValidationError, RecordNotFoundError
from roster_helpers import TabularParseError

logger = logging.getLogger(__name__)

# Errors mapped to 4xx responses by the blueprint handlers below
HANDLED_ERRORS = (ValidationError, RecordNotFoundError, TabularParseError)


def json_error(message, status_code):
    return jsonify({'success': False, 'message': message}), status_code


def current_admin_id():
    """Id of the logged-in admin, None for anonymous/test requests"""
    if current_user and current_user.is_authenticated:
        return getattr(current_user, 'id', None)
    return None


def create_api_blueprint():
    """Create the blueprint that serves the whole JSON API"""

    api_bp = Blueprint('api', __name__)

    def require_admin_auth(f):
        """Decorator to require an authenticated admin"""
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if current_app.config.get('LOGIN_DISABLED'):
                return f(*args, **kwargs)
            if not current_user.is_authenticated:
                return json_error('Not authorized, please log in', 401)
            return f(*args, **kwargs)
        return decorated_function

    @api_bp.errorhandler(ValidationError)
    def handle_validation_error(e):
        return json_error(str(e), 400)

    @api_bp.errorhandler(TabularParseError)
    def handle_parse_error(e):
        logger.warning(f"Rejected upload: {e}")
        return json_error(str(e), 400)

    @api_bp.errorhandler(RecordNotFoundError)
    def handle_not_found(e):
        return json_error(str(e), 404)

    # ===== REGISTER AUTH ROUTES =====
    from auth_routes import register_auth_routes
    register_auth_routes(api_bp, require_admin_auth)

    # ===== REGISTER STUDENT ROUTES =====
    from student_routes import register_student_routes
    register_student_routes(api_bp, require_admin_auth)

    # ===== REGISTER FINANCE ROUTES =====
    from finance_routes import register_finance_routes
    register_finance_routes(api_bp, require_admin_auth)

    # ===== REGISTER CATEGORY ROUTES =====
    from category_routes import register_category_routes
    register_category_routes(api_bp, require_admin_auth)

    return api_bp
