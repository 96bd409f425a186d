"""
Timer Routes Blueprint

Handles time tracking:
- /api/timers: List timers / start a timer
- /api/timers/active: The caller's running timer
- /api/timers/<timer_id>: Stop (PUT) or delete (DELETE) a timer
- /api/tasks/<task_id>/stats: Time statistics for a task
- /api/getTaskStats?taskId=: Same statistics, query-string form
"""

import logging
from contextlib import contextmanager
from flask import Blueprint, request, jsonify, current_app, g
from sqlalchemy.exc import SQLAlchemyError

from auth import login_required
from database.connection import get_db_session
from services.errors import TimeTrackingError, ValidationError, StorageFailure
from services.time_tracking import TimeTrackingService
from validators import validate_required_fields

logger = logging.getLogger(__name__)

# Create blueprint
timers_bp = Blueprint('timers_bp', __name__)


def build_service(session):
    """Create a TimeTrackingService bound to the app's time-tracking policy"""
    return TimeTrackingService(
        session,
        week_start=current_app.config.get('WEEK_START_DAY', 'sunday'),
        default_timezone=current_app.config.get('TIMEZONE', 'UTC'),
        clock=current_app.config.get('TIME_TRACKING_CLOCK'),
    )


@contextmanager
def unit_of_work():
    """
    One database transaction per request.
    Failures at commit or rollback surface as StorageFailure like any other
    storage error; business errors pass through untouched.
    """
    try:
        with get_db_session() as session:
            yield session
    except SQLAlchemyError as e:
        logger.error(f"Storage failure while finishing request: {e}")
        raise StorageFailure("Could not save changes") from e


@timers_bp.errorhandler(TimeTrackingError)
def handle_time_tracking_error(error):
    """Render any business-rule violation with its own status code"""
    if error.status_code >= 500:
        logger.error(f"{error.kind}: {error.message}")
    else:
        logger.info(f"{error.kind}: {error.message}")
    return jsonify(error.to_dict()), error.status_code


# ============================================================================
# TIMER ROUTES
# ============================================================================

@timers_bp.route('/api/timers', methods=['GET'])
@login_required
def list_timers():
    """List timers visible to the caller"""
    with unit_of_work() as session:
        timers = build_service(session).list_timers(g.actor)
        return jsonify({'success': True, 'timers': [t.to_dict() for t in timers]})


@timers_bp.route('/api/timers', methods=['POST'])
@login_required
def start_timer():
    """Start a timer on a task"""
    data = request.get_json(silent=True)
    is_valid, error = validate_required_fields(data, ['taskId'])
    if not is_valid:
        raise ValidationError(error, field='taskId')

    with unit_of_work() as session:
        timer = build_service(session).start_timer(g.actor, data['taskId'])
        payload = timer.to_dict()

    return jsonify({'success': True, 'timer': payload}), 201


@timers_bp.route('/api/timers/active', methods=['GET'])
@login_required
def get_active_timer():
    """Get the caller's running timer with its elapsed duration"""
    with unit_of_work() as session:
        active = build_service(session).get_active_timer(g.actor)
        return jsonify({
            'success': True,
            'activeTimer': active.to_dict() if active else None
        })


@timers_bp.route('/api/timers/<timer_id>', methods=['PUT'])
@login_required
def stop_timer(timer_id):
    """Stop a running timer"""
    with unit_of_work() as session:
        timer = build_service(session).stop_timer(g.actor, timer_id)
        payload = timer.to_dict()

    return jsonify({'success': True, 'timer': payload})


@timers_bp.route('/api/timers/<timer_id>', methods=['DELETE'])
@login_required
def delete_timer(timer_id):
    """Delete a timer"""
    with unit_of_work() as session:
        deleted = build_service(session).delete_timer(g.actor, timer_id)

    return jsonify({
        'success': True,
        'message': 'Timer deleted successfully',
        'timer': deleted
    })


# ============================================================================
# STATISTICS ROUTES
# ============================================================================

@timers_bp.route('/api/tasks/<task_id>/stats', methods=['GET'])
@login_required
def get_task_stats(task_id):
    """Time statistics for a task"""
    with unit_of_work() as session:
        stats = build_service(session).compute_task_statistics(task_id, tz=request.args.get('tz'))
    return jsonify(stats)


@timers_bp.route('/api/getTaskStats', methods=['GET'])
@login_required
def get_task_stats_by_query():
    """Time statistics for a task named in the query string"""
    task_id = request.args.get('taskId')
    if not task_id:
        raise ValidationError("Task ID is required", field='taskId')
    return get_task_stats(task_id)
