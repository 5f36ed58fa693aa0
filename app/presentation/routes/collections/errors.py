"""
JSON error responses for the collections blueprint.

Domain errors map to status codes here and nowhere else.
"""

from flask import jsonify
from werkzeug.exceptions import HTTPException

from app.buisness.collections.errors import (
    ConfigurationConflictError,
    ConfigurationInUseError,
    NotFoundError,
    StateTransitionError,
    ValidationFailed,
    ValidationInfrastructureError,
)
from app.utils.logger import get_logger
from app.presentation.routes.collections import collections_bp
from app.utils.logging_sanitizer import sanitize_exception_message

logger = get_logger("waste_collection.routes.collections")


@collections_bp.errorhandler(ValidationFailed)
def handle_validation_failed(error):
    return jsonify({
        'error': 'validation_failed',
        'errors': [e.to_dict() for e in error.errors],
        'warnings': [w.to_dict() for w in error.warnings],
    }), 400


@collections_bp.errorhandler(StateTransitionError)
def handle_state_transition(error):
    logger.warning(
        f"State transition rejected: {error}",
        extra={"context": {"request_id": error.request_id, "from": error.from_state, "to": error.to_state}},
    )
    return jsonify({'error': 'invalid_state', 'message': 'Operation not allowed in the current state'}), 409


@collections_bp.errorhandler(NotFoundError)
def handle_not_found(error):
    return jsonify({'error': 'not_found', 'message': str(error)}), 404


@collections_bp.errorhandler(ConfigurationConflictError)
def handle_configuration_conflict(error):
    logger.warning(f"Configuration conflict: {error}")
    return jsonify({'error': 'conflict', 'message': 'Configuration changed concurrently, try again'}), 409


@collections_bp.errorhandler(ConfigurationInUseError)
def handle_configuration_in_use(error):
    return jsonify({'error': 'configuration_in_use', 'message': str(error)}), 409


@collections_bp.errorhandler(ValidationInfrastructureError)
def handle_infrastructure(error):
    logger.error(f"Validation infrastructure failure: {sanitize_exception_message(error)}")
    return jsonify({'error': 'unavailable', 'message': 'Validation is temporarily unavailable'}), 503


@collections_bp.errorhandler(HTTPException)
def handle_http_exception(error):
    return jsonify({'error': error.name.lower().replace(' ', '_'), 'message': error.description}), error.code
