# main.py
"""
Student Fine & Department Finance Ledger
Flask application factory
"""

import os
import sys
import logging
from flask import Flask, jsonify
from flask_login import LoginManager

# Ensure project root is on sys.path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

# --- local modules ---
from config import config as config_map
from db_single import get_session
from models import Admin
from cli_commands import register_cli_commands


def create_app(config_name: str = None) -> Flask:
    """Create the application; config_name selects an entry of config.config"""
    config_name = config_name or os.environ.get('APP_ENV', 'default')
    config_obj = config_map[config_name]()

    app = Flask(__name__)
    app.config.from_object(config_obj)
    app.extensions["ledger_config"] = config_obj

    # Logging
    logging.basicConfig(
        level=logging.DEBUG if app.config.get('DEBUG') else logging.INFO,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )
    logger = logging.getLogger(__name__)

    # DB init
    from init_db import run_on_startup
    if not run_on_startup(config_obj):
        logger.warning("Database initialization had issues; continuing with existing state")

    # Flask-Login
    login_manager = LoginManager()
    login_manager.init_app(app)

    @login_manager.user_loader
    def load_user(user_id: str):
        if not user_id.startswith("admin_"):
            return None
        s = get_session()
        try:
            return s.query(Admin).filter_by(id=int(user_id.split("_", 1)[1]), is_active=True).first()
        except ValueError:
            return None
        finally:
            s.close()

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'success': False, 'message': 'Not authorized, please log in'}), 401

    # CLI
    register_cli_commands(app)

    # API blueprint
    from api_routes import create_api_blueprint
    app.register_blueprint(create_api_blueprint(), url_prefix="/api")
    logger.info("API blueprint registered")

    @app.route("/api/health")
    def health():
        return jsonify({'success': True, 'message': 'Server is running'})

    @app.errorhandler(404)
    def nf(_):
        return jsonify({'success': False, 'message': 'Not found'}), 404

    @app.errorhandler(405)
    def method_not_allowed(_):
        return jsonify({'success': False, 'message': 'Method not allowed'}), 405

    @app.errorhandler(413)
    def too_large(_):
        return jsonify({'success': False, 'message': 'File too large'}), 413

    @app.errorhandler(500)
    def ie(e):
        logger.error(f"Unhandled error: {e}")
        return jsonify({'success': False, 'message': 'Internal server error'}), 500

    return app


if __name__ == "__main__":
    # use_reloader=False prevents server restart which kills email threads
    create_app().run(debug=True, host="0.0.0.0", port=5000, use_reloader=False)
