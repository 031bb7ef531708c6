import os
import logging
from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_jwt_extended import JWTManager
from flask_cors import CORS
from sqlalchemy.orm import DeclarativeBase
from werkzeug.middleware.proxy_fix import ProxyFix
from datetime import datetime, timedelta, timezone

logger = logging.getLogger(__name__)

class Base(DeclarativeBase):
    pass

db = SQLAlchemy(model_class=Base)
jwt = JWTManager()

# Allocation engine defaults; each one can be overridden from the environment
ALLOCATION_DEFAULTS = {
    'ALLOCATION_LEDGER_TIMEOUT': 2.0,   # seconds the caller waits for the ledger write
    'ALLOCATION_COST_BUFFER': 1.10,     # estimation slack on top of distance x rate
    'ALLOCATION_RESERVE_RETRIES': 3,    # attempts on transient connection errors
}

def _engine_settings():
    """Read allocation engine settings from the environment"""
    settings = {}
    for key, default in ALLOCATION_DEFAULTS.items():
        raw = os.environ.get(key)
        if raw is None or raw.strip() == '':
            settings[key] = default
            continue
        try:
            settings[key] = type(default)(raw)
        except ValueError:
            logger.warning(f"Ignoring invalid {key}={raw!r}, using default {default}")
            settings[key] = default
    return settings

def create_app(config_overrides=None):
    # Create the app
    app = Flask(__name__)
    # Enforce SESSION_SECRET requirement
    app.secret_key = os.environ.get("SESSION_SECRET")
    if not app.secret_key:
        raise RuntimeError("SESSION_SECRET environment variable is required but not set")
    # Trust one proxy for client IP, scheme and host
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1)

    # CORS: booking and integration front-ends only
    production_origins = os.environ.get('ALLOWED_ORIGINS', '').split(',')
    allowed_origins = [origin.strip() for origin in production_origins if origin.strip()]

    if not allowed_origins:
        allowed_origins = ["http://localhost:3000", "http://127.0.0.1:3000"]

    CORS(app, origins=allowed_origins,
         supports_credentials=False,
         allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
         methods=["GET", "POST", "OPTIONS"])

    # Configure the database - use PostgreSQL in production, SQLite for development
    database_url = os.environ.get("DATABASE_URL") or "sqlite:///fleet_allocation.db"

    if database_url.startswith(("postgresql://", "postgres://")):
        # Ensure psycopg2 driver is specified
        if database_url.startswith("postgres://"):
            database_url = database_url.replace("postgres://", "postgresql://", 1)
        database_url = database_url.replace("postgresql://", "postgresql+psycopg2://", 1)

        from urllib.parse import urlparse
        parsed = urlparse(database_url)
        logger.info(f"Connecting to PostgreSQL: host={parsed.hostname}, db={parsed.path[1:]}, user={parsed.username}")

        app.config["SQLALCHEMY_DATABASE_URI"] = database_url
        app.config["SQLALCHEMY_ENGINE_OPTIONS"] = {
            "pool_size": 10,
            "pool_recycle": 280,  # Slightly less than 5 minutes to prevent stale connections
            "pool_pre_ping": True,
            "max_overflow": 15,
            "pool_timeout": 20,
            "connect_args": {
                "sslmode": os.environ.get("DATABASE_SSLMODE", "require"),
                "connect_timeout": 10,
                "application_name": "fleet_allocation",
                "keepalives_idle": 600,
                "keepalives_interval": 30,
                "keepalives_count": 3
            }
        }
    else:
        # Fallback to SQLite for local development
        app.config["SQLALCHEMY_DATABASE_URI"] = database_url
        app.config["SQLALCHEMY_ENGINE_OPTIONS"] = {
            "pool_recycle": 300,
            "pool_pre_ping": True,
        }

    # JWT Configuration
    app.config['JWT_SECRET_KEY'] = os.environ.get('JWT_SECRET_KEY') or app.secret_key
    app.config['JWT_ACCESS_TOKEN_EXPIRES'] = timedelta(hours=1)
    app.config['JWT_ALGORITHM'] = 'HS256'

    app.config.update(_engine_settings())

    if config_overrides:
        app.config.update(config_overrides)

    # Logging
    from utils.logging_config import setup_logging, log_request_start, log_request_end
    if not app.config.get('TESTING'):
        setup_logging(app)
    app.before_request(log_request_start)
    app.after_request(log_request_end)

    # Initialize extensions
    db.init_app(app)
    jwt.init_app(app)

    # Register blueprints
    from allocation_routes import allocation_bp

    app.register_blueprint(allocation_bp)

    from utils.config_validator import get_allocation_config_status
    logger.info(f"Allocation configuration: {get_allocation_config_status(app.config)}")

    with app.app_context():
        import models  # noqa: F401
        db.create_all()

    # Health check endpoint for deployment
    @app.route('/health')
    def health():
        """Simple health check endpoint for deployment readiness"""
        return {'status': 'ok', 'timestamp': datetime.now(timezone.utc).isoformat()}, 200

    return app
