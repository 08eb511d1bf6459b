import logging
from flask import Flask
from werkzeug.exceptions import HTTPException
from flask_jwt_extended import JWTManager
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool
from sqlalchemy.orm import sessionmaker, scoped_session
from dotenv import load_dotenv
from typing import Optional, Dict, Any

load_dotenv()

db_engine = None
SessionLocal = None
jwt = JWTManager()


def create_app(config: Optional[Dict[str, Any]] = None):
    global db_engine, SessionLocal
    from .config.settings import load_settings, APP_INFO
    from .config.pagination import DEFAULT_LIMIT, MAX_LIMIT, PAGE_SIZE_OPTIONS

    app = Flask(__name__)
    # explicit overrides (tests, callers) win over environment values
    app.config.update(load_settings(config))
    logging.basicConfig(level=app.config['LOG_LEVEL'])
    app.logger.setLevel(app.config['LOG_LEVEL'])

    # Database
    db_url = app.config['DATABASE_URL']
    if db_url.endswith(':memory:'):
        # Ensure a single shared in-memory SQLite database across all sessions
        db_engine = create_engine(
            db_url,
            echo=False,
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        db_engine = create_engine(db_url, echo=False, future=True)
    SessionLocal = scoped_session(sessionmaker(bind=db_engine, expire_on_commit=False, autoflush=False))

    jwt.init_app(app)

    from .routes.iam import iam_bp
    from .routes.catalog import cat_bp
    from .routes.products import products_bp
    from .routes.customers import customers_bp
    from .routes.inventory import inv_bp
    from .routes.sales import sales_bp
    from .routes.reports import rpt_bp
    app.register_blueprint(iam_bp, url_prefix='/iam')
    app.register_blueprint(cat_bp, url_prefix='/catalog')
    app.register_blueprint(products_bp, url_prefix='/products')
    app.register_blueprint(customers_bp, url_prefix='/customers')
    app.register_blueprint(inv_bp, url_prefix='/inventory')
    app.register_blueprint(sales_bp, url_prefix='/sales')
    app.register_blueprint(rpt_bp, url_prefix='/reports')

    @app.route('/healthz')
    def health():
        return {'status': 'ok'}

    @app.route('/app-info')
    def app_info():
        return {
            **APP_INFO,
            'environment': app.config['IMS_ENV'],
            'pagination': {
                'default_limit': DEFAULT_LIMIT,
                'max_limit': MAX_LIMIT,
                'page_size_options': list(PAGE_SIZE_OPTIONS),
            },
        }

    @app.teardown_appcontext
    def remove_session(exc=None):
        SessionLocal.remove()

    # Unified error handler producing standardized JSON shape
    @app.errorhandler(Exception)
    def handle_errors(e):  # type: ignore
        if isinstance(e, HTTPException):
            payload = {
                'error': {
                    'status': e.code,
                    'title': e.name,
                    'detail': e.description,
                }
            }
            errors = getattr(e, 'errors', None)
            if errors:
                payload['error']['errors'] = errors
            field_errors = getattr(e, 'field_errors', None)
            if field_errors:
                payload['error']['field_errors'] = field_errors
            return payload, e.code
        # Unhandled exception
        app.logger.exception('Unhandled exception')
        return {
            'error': {
                'status': 500,
                'title': 'Internal Server Error',
                'detail': 'Unexpected error'
            }
        }, 500

    return app


def get_db():
    return SessionLocal()
