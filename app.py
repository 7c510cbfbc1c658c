from __future__ import annotations
import os
from flask import Flask
from config import config_map
from extensions import db, migrate, login_manager, csrf
from werkzeug.security import generate_password_hash
from sqlalchemy import inspect

def _seed_from_config(app):
    if not app.config.get("SEED_TEST_DATA"):
        return
    with app.app_context():
        # users may not exist yet (before `flask db upgrade`)
        if not inspect(db.engine).has_table("users"):
            return

        from models import User  # local import avoids a cycle through extensions
        created = 0
        for u in app.config.get("DEFAULT_USERS", []):
            if User.query.filter_by(email=u["email"]).first():
                continue
            db.session.add(User(
                email=u["email"],
                password_hash=generate_password_hash(u["password"]),
                role=u["role"],
                is_active=True,
            ))
            created += 1
        if created:
            db.session.commit()

def register_blueprints(app: Flask) -> None:
    from blueprints.core import bp as core_bp, api_bp as core_api_bp
    from blueprints.auth.routes import api_bp as auth_api_bp
    from blueprints.electives.routes import api_bp as electives_api_bp
    from blueprints.assignments.routes import api_bp as assignments_api_bp

    # core without prefix: '/health' at the root
    app.register_blueprint(core_bp)
    app.register_blueprint(core_api_bp, url_prefix="/api/v1")
    app.register_blueprint(auth_api_bp, url_prefix="/api/v1")
    app.register_blueprint(electives_api_bp, url_prefix="/api/v1/admin")
    app.register_blueprint(assignments_api_bp, url_prefix="/api/v1/admin")

def register_cli(app: Flask) -> None:
    from blueprints.electives.cli import electives_cli
    app.cli.add_command(electives_cli)

def create_app(config_name: str | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    cfg_name = config_name or os.getenv("FLASK_CONFIG", "default")
    app.config.from_object(config_map[cfg_name])
    # pytest sets PYTEST_CURRENT_TEST; keep every test on its own in-memory DB
    if os.environ.get("PYTEST_CURRENT_TEST"):
        app.config["SQLALCHEMY_DATABASE_URI"] = "sqlite:///:memory:"
        app.config.setdefault("SQLALCHEMY_ENGINE_OPTIONS", {"connect_args": {"check_same_thread": False}})

    try:
        os.makedirs(app.instance_path, exist_ok=True)
    except OSError:
        pass
    db.init_app(app)
    migrate.init_app(app, db, render_as_batch=True)
    login_manager.init_app(app)
    csrf.init_app(app)
    register_blueprints(app)
    register_cli(app)
    _seed_from_config(app)
    return app
