import os
import time
import logging
from flask import Flask, g, jsonify, request
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from dotenv import load_dotenv

from .config import CONFIGS, ProdConfig

# Initialize extensions
db = SQLAlchemy()
migrate = Migrate()

request_log = logging.getLogger('quote_portal.requests')


def create_app(config_name: str | None = None, overrides: dict | None = None) -> Flask:
    """Application factory with environment based configuration."""
    load_dotenv()

    app = Flask(__name__, instance_relative_config=True)
    os.makedirs(app.instance_path, exist_ok=True)

    # Pick configuration
    env = config_name or os.getenv('ENV') or os.getenv('FLASK_ENV') or 'production'
    app.config.from_object(CONFIGS.get(env, ProdConfig))
    if overrides:
        app.config.update(overrides)

    # Initialise logging
    level = logging.DEBUG if app.debug else app.config['LOG_LEVEL']
    logging.basicConfig(level=level)

    db.init_app(app)
    migrate.init_app(app, db)

    # Ensure models loaded so tables can be created
    from quote_portal import models  # noqa
    with app.app_context():
        db.create_all()

    @app.before_request
    def start_timer():
        g.request_started = time.perf_counter()

    @app.after_request
    def log_request(response):
        started = g.pop('request_started', None)
        elapsed = (time.perf_counter() - started) * 1000 if started else 0.0
        request_log.info('%s %s %s %.1fms', request.method, request.full_path.rstrip('?'),
                         response.status_code, elapsed)
        return response

    @app.route('/')
    def index():
        return jsonify(status='success', message='Roofing quote portal API', api='/api')

    from quote_portal.errors import register_error_handlers
    from quote_portal.quotes.routes import bp as quotes_bp
    from quote_portal.cli import quotes_cli

    register_error_handlers(app)
    app.register_blueprint(quotes_bp, url_prefix='/api')
    app.cli.add_command(quotes_cli)

    return app


def close_store(app: Flask) -> None:
    """Release pooled database connections at process shutdown."""
    with app.app_context():
        db.session.remove()
        db.engine.dispose()
