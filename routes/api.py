import logging

from flask import Blueprint, current_app, request, jsonify

from dogtrails.errors import TrailError
from dogtrails.models import PROVIDERS, TrailQuery
from dogtrails.ranking import filter_and_rank

logger = logging.getLogger(__name__)

api_bp = Blueprint('api', __name__)


@api_bp.route('/api/trails')
def api_trails():
    try:
        query = TrailQuery.from_args(request.args)
    except ValueError as e:
        return jsonify({'error': str(e)}), 400

    service = current_app.extensions['trail_service']
    try:
        trails = service.fetch_trails(query)
    except TrailError as e:
        logger.error(f'Trail fetch failed: {e}')
        return jsonify({'error': str(e)}), 502

    return jsonify([t.to_dict() for t in filter_and_rank(trails, query)])


@api_bp.route('/api/providers')
def api_providers():
    return jsonify([p.to_dict() for p in PROVIDERS])
