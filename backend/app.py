"""
Staff allocation engine - Flask application factory

Hosts the database session and configuration for the allocation engine.
The engine is used as a plain Python API:

- allocations.AllocationStore: create / update / delete bookings with
  overlap detection and forced overrides (trim, split, delete)
- tasks: task writes that keep phase completion rates current
- utilization.calculate_utilization: weekly utilization table per employee

Environment Variables:
- FLASK_ENV: development/production
- DATABASE_URL: Database connection string
- LOG_LEVEL: Logging level
- ACTIVE_PROJECT_STATUSES: Comma separated project statuses counted as active
- SERIALIZE_EMPLOYEE_WRITES: Lock the employee row during allocation writes

Usage:
    from app import create_app
    app = create_app('development')
    with app.app_context():
        ...
"""

from flask import Flask
from config import config
from db import db
import logging
from flask_migrate import Migrate

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def configure_logging(app, config_name='development'):
    """Configure logging for the application"""
    # Clear existing handlers
    for handler in app.logger.handlers[:]:
        app.logger.removeHandler(handler)

    # Set log level
    if app.config.get('DEBUG', False):
        log_level = logging.INFO
    else:
        log_level = getattr(logging, str(app.config.get('LOG_LEVEL', 'WARNING')).upper(), logging.WARNING)
    app.logger.setLevel(log_level)

    # Create console handler
    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT))

    # Add handler to logger
    app.logger.addHandler(console_handler)

    # Engine modules log through their own module loggers
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    if not root_logger.handlers:
        root_handler = logging.StreamHandler()
        root_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root_logger.addHandler(root_handler)

    # Log application startup
    app.logger.info(f"Allocation engine starting in {config_name} mode")


def create_app(config_name='development'):
    """Application factory pattern"""
    app = Flask(__name__)

    # Load configuration
    app.config.from_object(config[config_name])

    # Configure logging
    configure_logging(app, config_name)

    # Initialize extensions
    db.init_app(app)

    # Initialize Flask-Migrate
    Migrate(app, db)

    # Initialize and seed database on startup
    with app.app_context():
        from database import init_db, seed_database
        init_db()
        if app.config.get('SEED_DATABASE'):
            seed_database()

    return app
