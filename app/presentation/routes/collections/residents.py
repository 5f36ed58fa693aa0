from flask import jsonify

from app import limiter
from app.presentation.routes.collections import collections_bp
from app.presentation.routes.collections.access import admin_required, caller_context, json_body
from app.services.collections import get_collection_service


@collections_bp.post('/residents')
@limiter.limit("10 per hour")
def register_resident():
    result = get_collection_service().register_resident(json_body(), caller_context())
    return jsonify(result), 201


@collections_bp.get('/localities')
def list_localities():
    return jsonify(get_collection_service().list_locality_schedules())


@collections_bp.put('/localities/<locality>')
@admin_required
def set_locality_schedule(locality):
    data = json_body()
    result = get_collection_service().set_locality_schedule(locality, data.get('weekday'), caller_context())
    return jsonify(result)
