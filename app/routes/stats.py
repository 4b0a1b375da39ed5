from flask import Blueprint, jsonify
from flask_login import login_required, current_user
from app.services.stats_service import DashboardStatsService

bp = Blueprint('stats', __name__)


@bp.route('')
@login_required
def get_dashboard_stats():
    """Dashboard figures for the logged-in user, recomputed on every call"""
    return jsonify(DashboardStatsService.build(current_user))
