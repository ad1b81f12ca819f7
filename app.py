from flask import Flask, jsonify
from flask_login import LoginManager
from flask_cors import CORS
from config import load_app_config
from models import AdminUser
from certificate import CertificateService
from routes import main_bp
from admin_routes import admin_bp
import logging


def create_app(overrides=None):
    """Build the Flask app. `overrides` are applied on top of the environment config."""
    app = Flask(__name__, static_folder=None)
    app.config.update(load_app_config(overrides))

    logging.info(f"Using data directory: {app.config['DATA_DIR']}")

    # Initialize extensions
    CORS(app, origins=app.config['CORS_ORIGINS'], supports_credentials=True)

    service = CertificateService(app.config['DATA_DIR'])
    service.bootstrap()
    app.extensions['certificates'] = service

    admin = AdminUser(app.config['ADMIN_USER'], app.config['ADMIN_PASS'])
    app.extensions['admin_user'] = admin

    login_manager = LoginManager()
    login_manager.init_app(app)

    @login_manager.user_loader
    def load_user(user_id):
        """Resolve the session id back to the configured admin, if it still matches."""
        if user_id == admin.get_id():
            return admin
        return None

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'success': False, 'error': 'Unauthorized'}), 401

    app.register_blueprint(main_bp)
    app.register_blueprint(admin_bp)
    register_error_handlers(app)
    return app


def register_error_handlers(app):
    @app.errorhandler(404)
    def not_found(e):
        return jsonify({'success': False, 'error': 'Endpoint not found'}), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({'success': False, 'error': 'Method not allowed'}), 405

    @app.errorhandler(500)
    def server_error(e):
        logging.error(f'[APP] Unhandled error: {getattr(e, "original_exception", e)!r}')
        return jsonify({'success': False, 'error': 'Something went wrong!'}), 500


if __name__ == '__main__':
    from run_server import main
    main()
