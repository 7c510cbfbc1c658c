from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_login import LoginManager
from flask_wtf import CSRFProtect

db = SQLAlchemy()
csrf = CSRFProtect()
migrate = Migrate()
login_manager = LoginManager()
# API-only app: no login page to redirect to, unauthorized_handler answers 401
login_manager.login_view = None
login_manager.session_protection = "strong"
