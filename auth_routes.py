"""
Admin Authentication Routes
Session-based login for the admin API (Flask-Login)
"""

from flask import request, jsonify
from flask_login import login_user, logout_user, current_user
from datetime import datetime
import logging

from db_single import get_session
from models import Admin
from api_routes import json_error

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


def register_auth_routes(api_bp, require_admin_auth):
    """Register login/logout/profile routes on the API blueprint"""

    @api_bp.route('/auth/login', methods=['POST'])
    def login():
        """Admin login"""
        data = request.get_json(silent=True) or {}
        email = str(data.get('email') or '').strip().lower()
        password = str(data.get('password') or '')

        if not email or not password:
            return json_error('Please provide email and password', 400)

        session_db = get_session()
        try:
            admin = session_db.query(Admin).filter_by(email=email, is_active=True).first()
            if not admin or not admin.check_password(password):
                logger.warning(f"Failed login attempt for {email}")
                return json_error('Invalid email or password', 401)

            admin.last_login = datetime.utcnow()
            session_db.commit()

            login_user(admin, remember=True)
            logger.info(f"Admin logged in: {admin.email}")
            return jsonify({'success': True, 'message': 'Login successful', 'data': admin.to_dict()})
        except Exception as e:
            session_db.rollback()
            logger.error(f"Login error for {email}: {e}")
            return json_error('Error during login', 500)
        finally:
            session_db.close()

    @api_bp.route('/auth/logout', methods=['POST'])
    @require_admin_auth
    def logout():
        logout_user()
        return jsonify({'success': True, 'message': 'Logged out'})

    @api_bp.route('/auth/profile')
    @require_admin_auth
    def profile():
        """Current admin profile"""
        return jsonify({'success': True, 'data': current_user.to_dict()})

    @api_bp.route('/auth/change-password', methods=['PUT'])
    @require_admin_auth
    def change_password():
        data = request.get_json(silent=True) or {}
        current_password = str(data.get('current_password') or '')
        new_password = str(data.get('new_password') or '')

        if not current_password or not new_password:
            return json_error('Please provide current and new password', 400)
        if len(new_password) < MIN_PASSWORD_LENGTH:
            return json_error(f'Password must be at least {MIN_PASSWORD_LENGTH} characters', 400)

        session_db = get_session()
        try:
            admin = session_db.query(Admin).filter_by(id=current_user.id).first()
            if not admin or not admin.check_password(current_password):
                return json_error('Current password is incorrect', 401)

            admin.set_password(new_password)
            session_db.commit()
            return jsonify({'success': True, 'message': 'Password updated successfully'})
        except Exception as e:
            session_db.rollback()
            logger.error(f"Error changing password for admin {current_user.id}: {e}")
            return json_error('Error updating password', 500)
        finally:
            session_db.close()
