from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_jwt_extended import JWTManager
from flask_migrate import Migrate
from flask_cors import CORS
from config import Config

db = SQLAlchemy()
jwt = JWTManager()
migrate = Migrate()

INTERNAL_PREFIXES = ('/api', '/api/_internal')


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)
    app.logger.setLevel(app.config.get('LOG_LEVEL', 'INFO'))

    db.init_app(app)
    jwt.init_app(app)
    migrate.init_app(app, db)
    CORS(app, origins='*', allow_headers=['Content-Type', 'Authorization'])

    # Import models to ensure they are registered with SQLAlchemy
    from quickbite.models import models, rating  # noqa: F401

    from quickbite.routes import internal
    from quickbite.routes import auth
    from quickbite.routes import stores
    from quickbite.routes import staff
    from quickbite.routes import orders
    from quickbite.routes import rating as rating_routes
    from quickbite.routes import admin
    from quickbite.routes import uploads

    # Privileged functions are served under both historical prefixes
    for prefix in INTERNAL_PREFIXES:
        app.register_blueprint(
            internal.internal_bp,
            url_prefix=prefix,
            name='internal' if prefix == '/api' else 'internal_legacy',
        )
    app.register_blueprint(auth.auth_bp)
    app.register_blueprint(stores.stores_bp)
    app.register_blueprint(staff.staff_bp)
    app.register_blueprint(orders.orders_bp)
    app.register_blueprint(rating_routes.rating_bp)
    app.register_blueprint(admin.admin_bp)
    app.register_blueprint(uploads.uploads_bp)

    return app
