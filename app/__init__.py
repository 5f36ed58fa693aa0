from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_login import LoginManager
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
import os
from app.utils.logger import get_logger

# Initialize extensions
db = SQLAlchemy()
migrate = Migrate()
login_manager = LoginManager()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["200 per day", "50 per hour"],
    storage_uri="memory://"  # Use Redis in production for distributed systems
)


def _env_flag(name: str, default: str) -> bool:
    return os.environ.get(name, default).lower() in ('true', '1', 'yes', 'on')


def create_app(test_config=None):
    from pathlib import Path

    app = Flask(__name__)

    logger = get_logger("waste_collection")
    logger.info("Initializing Flask application")

    # SECURITY: Require SECRET_KEY in environment - no fallback
    app.config['SECRET_KEY'] = os.environ.get('SECRET_KEY')

    # Prefer an explicit DATABASE_URL; otherwise keep SQLite under instance/
    db_env = os.environ.get('DATABASE_URL')
    if db_env:
        app.config['SQLALCHEMY_DATABASE_URI'] = db_env
    else:
        base_dir = Path(__file__).parent.parent
        instance_dir = base_dir / 'instance'
        instance_dir.mkdir(parents=True, exist_ok=True)
        default_db_path = instance_dir / 'waste_collection.db'
        app.config['SQLALCHEMY_DATABASE_URI'] = f"sqlite:///{str(default_db_path.resolve())}"

    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False

    # Collection rules
    app.config['COLLECTION_WINDOW_START'] = os.environ.get('COLLECTION_WINDOW_START', '06:00')
    app.config['COLLECTION_WINDOW_END'] = os.environ.get('COLLECTION_WINDOW_END', '18:00')
    app.config['COLLECTION_BUSINESS_DAYS'] = os.environ.get('COLLECTION_BUSINESS_DAYS', 'MONDAY,TUESDAY,WEDNESDAY,THURSDAY,FRIDAY')
    app.config['COLLECTION_MIN_LEAD_HOURS'] = int(os.environ.get('COLLECTION_MIN_LEAD_HOURS', '24'))
    app.config['COLLECTION_DAILY_LIMIT'] = int(os.environ.get('COLLECTION_DAILY_LIMIT', '3'))
    app.config['COLLECTION_ORGANIC_HOUR'] = int(os.environ.get('COLLECTION_ORGANIC_HOUR', '8'))

    # Notification delivery
    app.config['NOTIFY_ASYNC'] = _env_flag('NOTIFY_ASYNC', 'True')
    app.config['NOTIFY_MAX_RETRIES'] = int(os.environ.get('NOTIFY_MAX_RETRIES', '3'))
    app.config['NOTIFY_BASE_DELAY'] = float(os.environ.get('NOTIFY_BASE_DELAY', '1.0'))
    app.config['NOTIFY_MAX_DELAY'] = float(os.environ.get('NOTIFY_MAX_DELAY', '30.0'))
    app.config['NOTIFY_DEDUPE_MINUTES'] = int(os.environ.get('NOTIFY_DEDUPE_MINUTES', '5'))

    app.config['RATELIMIT_ENABLED'] = _env_flag('RATELIMIT_ENABLED', 'True')

    if test_config:
        app.config.update(test_config)

    if not app.config['SECRET_KEY']:
        logger.critical("SECRET_KEY not set in environment! Application cannot start.")
        raise RuntimeError("SECRET_KEY environment variable is required")

    logger.debug("Database configured: %s", app.config['SQLALCHEMY_DATABASE_URI'].split(':', 1)[0])

    # Initialize extensions with app
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    limiter.init_app(app)

    logger.debug("Extensions initialized")

    # Import models to ensure they're registered with SQLAlchemy
    from app.data.core.user_info.user import User
    from app.data.collections.collection_company import CollectionCompany
    from app.data.collections.locality_schedule import LocalitySchedule
    from app.data.collections.points_configuration import PointsConfiguration
    from app.data.collections.collection_request import CollectionRequest
    from app.data.collections.collection_record import CollectionRecord
    from app.data.collections.points_ledger_entry import PointsLedgerEntry

    logger.debug("Models imported and registered")

    @login_manager.request_loader
    def load_caller(request):
        """Resolve the caller from the identity header set by the upstream gateway"""
        caller_id = request.headers.get('X-Caller-Id')
        if not caller_id or not caller_id.isdigit():
            return None
        user = db.session.get(User, int(caller_id))
        if user is None or not user.is_active:
            return None
        return user

    from app.presentation.routes import init_app as init_routes
    init_routes(app)

    @app.after_request
    def set_security_headers(response):
        """Add security headers to all responses"""
        response.headers['X-Content-Type-Options'] = 'nosniff'
        response.headers['X-Frame-Options'] = 'DENY'
        return response

    logger.info("Flask application initialization complete")

    return app
