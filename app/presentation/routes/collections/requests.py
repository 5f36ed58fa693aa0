from flask import jsonify, request
from flask_login import current_user, login_required

from app import limiter
from app.data.core.user_info.user import User
from app.presentation.routes.collections import collections_bp
from app.presentation.routes.collections.access import (
    admin_required,
    caller_context,
    ensure_owner_or_staff,
    json_body,
    staff_required,
)
from app.services.collections import get_collection_service


@collections_bp.post('/requests')
@login_required
@limiter.limit("30 per hour")
def create_request():
    data = json_body()
    # Residents always create for themselves; staff may act for a resident
    if current_user.role == User.ROLE_RESIDENT or data.get('user_id') in (None, ''):
        data['user_id'] = current_user.id
    result = get_collection_service().create_request(data, caller_context())
    return jsonify(result), 201


@collections_bp.get('/requests')
@login_required
def list_requests():
    user_id = current_user.id
    if current_user.role != User.ROLE_RESIDENT:
        user_id = request.args.get('user_id', type=int) or current_user.id
    state = request.args.get('state', type=str)
    limit = min(request.args.get('limit', 20, type=int), 100)
    return jsonify(get_collection_service().list_requests(user_id, state.upper() if state else None, limit))


@collections_bp.get('/requests/<int:request_id>')
@login_required
def get_request(request_id):
    result = get_collection_service().get_request(request_id)
    ensure_owner_or_staff(result['user_id'])
    return jsonify(result)


@collections_bp.post('/requests/<int:request_id>/schedule')
@admin_required
def schedule_request(request_id):
    data = json_body()
    result = get_collection_service().schedule_request(request_id, data.get('scheduled_date'), caller_context())
    return jsonify(result)


@collections_bp.post('/requests/<int:request_id>/assign')
@admin_required
def assign_request(request_id):
    data = json_body()
    result = get_collection_service().assign_request(request_id, data.get('company_id'), caller_context())
    return jsonify(result)


@collections_bp.post('/requests/<int:request_id>/cancel')
@login_required
def cancel_request(request_id):
    service = get_collection_service()
    ensure_owner_or_staff(service.get_request(request_id)['user_id'])
    data = json_body()
    return jsonify(service.cancel_request(request_id, data.get('reason'), caller_context()))


@collections_bp.post('/requests/<int:request_id>/complete')
@staff_required
def complete_request(request_id):
    data = json_body()
    result = get_collection_service().complete_request(
        request_id,
        data.get('weight_kg'),
        data.get('separated', False),
        data.get('company_id'),
        caller_context(),
    )
    return jsonify(result)
