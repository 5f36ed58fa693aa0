from flask import jsonify, request
from flask_login import current_user, login_required

from app.presentation.routes.collections import collections_bp
from app.presentation.routes.collections.access import admin_required, caller_context, json_body
from app.services.collections import get_collection_service


@collections_bp.get('/points/configurations')
@admin_required
def list_configurations():
    return jsonify(get_collection_service().list_points_configurations())


@collections_bp.post('/points/configurations')
@admin_required
def activate_configuration():
    result = get_collection_service().activate_points_configuration(json_body(), caller_context())
    return jsonify(result), 201


@collections_bp.post('/points/configurations/<int:configuration_id>/activate')
@admin_required
def reactivate_configuration(configuration_id):
    return jsonify(get_collection_service().activate_existing_configuration(configuration_id, caller_context()))


@collections_bp.delete('/points/configurations/<int:configuration_id>')
@admin_required
def delete_configuration(configuration_id):
    return jsonify(get_collection_service().delete_points_configuration(configuration_id))


@collections_bp.get('/points/me')
@login_required
def my_points():
    limit = min(request.args.get('limit', 20, type=int), 100)
    return jsonify(get_collection_service().user_points(current_user.id, limit))


@collections_bp.get('/users/<int:user_id>/points')
@admin_required
def user_points(user_id):
    limit = min(request.args.get('limit', 20, type=int), 100)
    return jsonify(get_collection_service().user_points(user_id, limit))


@collections_bp.post('/users/<int:user_id>/points/bonus')
@admin_required
def grant_bonus(user_id):
    data = json_body()
    return jsonify(get_collection_service().grant_bonus(user_id, data.get('points'), data.get('reason'))), 201


@collections_bp.post('/users/<int:user_id>/points/penalty')
@admin_required
def apply_penalty(user_id):
    data = json_body()
    return jsonify(get_collection_service().apply_penalty(user_id, data.get('points'), data.get('reason'))), 201


@collections_bp.post('/points/preview')
@login_required
def preview_points():
    data = json_body()
    result = get_collection_service().preview_points(
        current_user.id,
        data.get('material'),
        data.get('quantity'),
        quality=data.get('quality'),
        collected_at=data.get('collected_at'),
        caller=caller_context(),
    )
    return jsonify(result)
