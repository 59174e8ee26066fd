from flask import Flask, jsonify
from flask_cors import CORS
import logging

from retrovault_backend.blueprints.sync import init_sync_blueprint
from retrovault_backend.services.sync_service import SyncService

logger = logging.getLogger(__name__)


def create_app(sync_service=None):
    app = Flask(__name__)

    # Initialize extensions
    CORS(app, origins=['*'])

    app.register_blueprint(init_sync_blueprint(sync_service or SyncService()))

    # Health check endpoint
    @app.route('/health', methods=['GET'])
    @app.route('/api/health', methods=['GET'])
    def health_check():
        return jsonify({'status': 'OK', 'message': 'Local API server running'})

    # Error handlers
    @app.errorhandler(404)
    def not_found(error):
        return jsonify({
            'success': False,
            'message': 'Endpoint not found',
            'error': 'The requested resource was not found on this server.'
        }), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({
            'success': False,
            'message': 'Method not allowed',
            'error': 'The method is not allowed for the requested URL.'
        }), 405

    @app.errorhandler(500)
    def internal_error(error):
        return jsonify({
            'success': False,
            'message': 'Internal server error',
            'error': 'An unexpected error occurred. Please try again later.'
        }), 500

    return app


app = create_app()
