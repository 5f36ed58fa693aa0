"""
Routes package for the waste collection system
"""

from app.utils.logger import get_logger

logger = get_logger("waste_collection.routes")


def init_app(app):
    """Register route blueprints and build the per-application collection service"""
    logger.debug("Initializing route blueprints")

    from app.services.collections import init_collection_service
    from .collections import collections_bp

    app.register_blueprint(collections_bp, url_prefix='/collections')
    init_collection_service(app)

    logger.info("Registered collections blueprint")
