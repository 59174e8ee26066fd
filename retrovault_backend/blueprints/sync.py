from flask import Blueprint, request, jsonify
import logging

logger = logging.getLogger(__name__)


def init_sync_blueprint(sync_service):
    """Initialize the sync blueprint with the seeding service"""
    sync_bp = Blueprint('sync', __name__)

    @sync_bp.route('/sync', methods=['POST'])
    @sync_bp.route('/api/syncNessieToFirestore', methods=['POST'])
    def sync_user_data():
        """Seed or refresh a user's financial data"""
        data = request.get_json(silent=True) or {}
        user_id = data.get('userId')

        if not user_id:
            return jsonify({'error': 'User ID is required'}), 400

        force_refresh = bool(data.get('forceRefresh', False))
        logger.info(f"[LOCAL API] Processing sync request for user: {user_id}, forceRefresh: {force_refresh}")

        try:
            result = sync_service.sync_user_data(user_id, data.get('userInfo') or {}, force_refresh)
            return jsonify({
                'success': True,
                'message': 'Data synced successfully',
                **result
            }), 200

        except Exception as e:
            logger.error(f"[LOCAL API] Error syncing user {user_id}: {e}")
            return jsonify({
                'success': False,
                'error': str(e) or 'Internal server error'
            }), 500

    return sync_bp
