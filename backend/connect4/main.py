from flask import Blueprint, current_app, jsonify
from sqlalchemy.exc import SQLAlchemyError
from .models import db, PlayerStats

main = Blueprint('main', __name__)


@main.route('/health')
def health():
    return jsonify({'status': 'ok', 'environment': current_app.config.get('ENVIRONMENT')}), 200


@main.route('/leaderboard', methods=['GET'])
@main.route('/leaderboard/', methods=['GET'])
def leaderboard():
    """Top players by wins; ties go to whoever needed fewer games."""
    limit = int(current_app.config.get('LEADERBOARD_LIMIT', 10))
    try:
        rows = (
            PlayerStats.query
            .order_by(PlayerStats.wins.desc(), PlayerStats.games_played.asc())
            .limit(limit)
            .all()
        )
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.error(f"[leaderboard] query failed: {exc}")
        return jsonify({'error': 'Failed to fetch leaderboard'}), 500
    return jsonify([row.to_dict() for row in rows])
