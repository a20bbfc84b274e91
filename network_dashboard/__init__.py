"""
Network What-If Dashboard
A Flask application for modelling supply networks and stress-testing them.
"""

from flask import Flask, request
import structlog
import logging
import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

LOG_LEVEL = getattr(logging, os.getenv('LOG_LEVEL', 'INFO').upper(), logging.INFO)

# Configure structured logging
structlog.configure(
    processors=[
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", key="timestamp"),
        structlog.processors.StackInfoRenderer(),
        structlog.dev.ConsoleRenderer() if os.getenv('FLASK_ENV') == 'development' else structlog.processors.JSONRenderer(),
    ],
    wrapper_class=structlog.make_filtering_bound_logger(LOG_LEVEL),
    logger_factory=structlog.PrintLoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()

DEFAULT_STORE_PATH = os.path.join('data', 'companies.json')


def create_app(config=None):
    """Application factory pattern for Flask app creation."""
    app = Flask(__name__)

    # Configuration
    app.config['SECRET_KEY'] = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    app.config['DEBUG'] = os.getenv('FLASK_DEBUG', 'false').lower() == 'true'
    app.config['COMPANY_STORE_PATH'] = os.getenv('COMPANY_STORE_PATH', DEFAULT_STORE_PATH)
    if config:
        app.config.update(config)

    # CORS configuration (simple approach for development)
    @app.after_request
    def after_request(response):
        allowed_origins = os.getenv('ALLOWED_ORIGINS', 'http://localhost:5000').split(',')
        origin = request.headers.get('Origin')
        if origin in allowed_origins:
            response.headers['Access-Control-Allow-Origin'] = origin
        response.headers['Access-Control-Allow-Methods'] = 'GET, POST, PUT, PATCH, DELETE, OPTIONS'
        response.headers['Access-Control-Allow-Headers'] = 'Content-Type, Authorization'
        return response

    # Register blueprints
    from .api import api_bp
    app.register_blueprint(api_bp, url_prefix='/api')

    logger.info("Flask application created successfully")
    return app
