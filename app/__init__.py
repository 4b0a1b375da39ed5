import logging

from flask import Flask, jsonify, request
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_login import LoginManager
from config import Config

db = SQLAlchemy()
migrate = Migrate()
login = LoginManager()

logger = logging.getLogger(__name__)

def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    logging.basicConfig(
        level=app.config.get('LOG_LEVEL', 'INFO'),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    db.init_app(app)
    migrate.init_app(app, db)
    login.init_app(app)

    from app import security
    security.init_app(app)

    from app import errors
    errors.register_error_handlers(app)

    # Register blueprints
    from app.routes.users import bp as users_bp
    app.register_blueprint(users_bp, url_prefix='/api/users')

    from app.routes.tasks import bp as tasks_bp
    app.register_blueprint(tasks_bp, url_prefix='/api/tasks')

    from app.routes.events import bp as events_bp
    app.register_blueprint(events_bp, url_prefix='/api/events')

    from app.routes.stats import bp as stats_bp
    app.register_blueprint(stats_bp, url_prefix='/api/stats')

    from app.routes.progress import bp as progress_bp
    app.register_blueprint(progress_bp, url_prefix='/api/progress')

    from app.routes.google_calendar import bp as google_calendar_bp
    app.register_blueprint(google_calendar_bp, url_prefix='/api/google-calendar')

    @app.after_request
    def log_request(response):
        logger.debug(f"{request.method} {request.path} -> {response.status_code}")
        return response

    @app.route('/')
    def index():
        return jsonify('StudySync Server is running')

    return app

from app import models
