#!/usr/bin/env python3
"""
Build orchestrator for the waste collection system
Creates tables and inserts the critical data every deployment needs
"""

import json
import os
from pathlib import Path

from app import db
from app.utils.logger import get_logger

logger = get_logger("waste_collection.build")

CRITICAL_DATA_FILE = Path(__file__).parent / 'data' / 'collections' / 'build_data_critical.json'


def load_critical_data(path: Path = CRITICAL_DATA_FILE) -> dict:
    if not path.exists():
        error_msg = f"Critical data file not found: {path}"
        logger.error(error_msg)
        raise FileNotFoundError(error_msg)
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


def verify_critical_data(critical_data: dict) -> bool:
    """
    Check that every seeded locality has a schedule

    Returns:
        bool: True if all critical data is present, False otherwise
    """
    from app.data.collections.locality_schedule import LocalitySchedule

    expected = {item['locality'] for item in critical_data.get('locality_schedules', [])}
    present = {row.locality for row in LocalitySchedule.query.filter(LocalitySchedule.locality.in_(expected)).all()}
    missing = expected - present
    if missing:
        logger.warning(f"Locality schedules missing: {sorted(missing)}")
        return False
    logger.info("Critical data verification passed")
    return True


def insert_critical_data(critical_data: dict = None) -> None:
    """
    Insert critical data that must always be present.

    Locality schedules are create-only so administrator overrides survive
    rebuilds. The default points configuration is only inserted when no
    configuration exists at all.
    """
    from app.data.collections.locality_schedule import LocalitySchedule
    from app.data.collections.points_configuration import PointsConfiguration
    from app.data.core.user_info.user import User

    critical_data = critical_data or load_critical_data()

    try:
        for item in critical_data.get('locality_schedules', []):
            LocalitySchedule.find_or_create_from_dict(item, lookup_fields=['locality'], commit=False)

        default_config = critical_data.get('points_configuration')
        if default_config and PointsConfiguration.query.first() is None:
            PointsConfiguration.create_from_dict(dict(default_config, is_active=True), commit=False)
            logger.info("Inserted default points configuration")

        admin_email = os.environ.get('ADMIN_EMAIL')
        if admin_email:
            User.find_or_create_from_dict(
                {'email': admin_email.lower(), 'name': 'Administrator', 'role': User.ROLE_ADMIN},
                lookup_fields=['email'],
                commit=False,
            )

        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.error(f"Critical data insertion failed: {e}")
        raise

    if not verify_critical_data(critical_data):
        raise RuntimeError("Critical data verification failed after insertion")


def build_database(app, seed: bool = True) -> None:
    """
    Create all tables and, unless disabled, insert critical data

    Args:
        app: Flask application
        seed (bool): Insert critical data after creating tables
    """
    with app.app_context():
        logger.info("Creating database tables")
        db.create_all()
        if seed:
            insert_critical_data()
        logger.info("Database build complete")
