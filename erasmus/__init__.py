# FILE: erasmus/__init__.py
import re
from markupsafe import Markup
from flask import Flask, redirect, url_for
from config import Config
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_login import LoginManager, current_user
from flask_wtf.csrf import CSRFProtect
from flask_moment import Moment

# 1. Extensions are declared unbound and attached inside create_app
db = SQLAlchemy()
migrate = Migrate()
login = LoginManager()
moment = Moment()
login.login_view = 'auth.login'
login.login_message = 'Molimo prijavite se za pristup ovoj stranici.'

csrf = CSRFProtect()

def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)
    app.json.ensure_ascii = False

    # 2. Bind extensions to this app instance
    db.init_app(app)
    migrate.init_app(app, db)
    login.init_app(app)
    csrf.init_app(app)
    moment.init_app(app)

    @app.template_filter('nl2br')
    def nl2br_filter(text_to_convert):
        """
        A custom Jinja2 filter to convert newline characters to <br> tags.
        """
        if text_to_convert:
            escaped = str(Markup.escape(text_to_convert))
            return Markup(re.sub(r'(\r\n|\n|\r)', '<br>', escaped))
        return ''

    # 3. Blueprints
    from erasmus.errors import bp as errors_bp
    app.register_blueprint(errors_bp)

    from erasmus.auth import bp as auth_bp
    app.register_blueprint(auth_bp, url_prefix='/auth')

    from erasmus.admin import bp as admin_bp
    app.register_blueprint(admin_bp, url_prefix='/admin')

    from erasmus.programs import bp as programs_bp, api_bp as programs_api_bp
    app.register_blueprint(programs_bp, url_prefix='/programs')
    app.register_blueprint(programs_api_bp, url_prefix='/api/programs')

    from erasmus.applications import bp as applications_bp
    app.register_blueprint(applications_bp, url_prefix='/applications')

    from erasmus.search import bp as search_bp
    app.register_blueprint(search_bp, url_prefix='/search')

    from erasmus.main import bp as main_bp
    app.register_blueprint(main_bp)

    # 4. Root route and context processors
    @app.route('/')
    def index():
        if current_user.is_authenticated:
            return redirect(url_for('main.dashboard'))
        return redirect(url_for('programs.list_programs'))

    @app.context_processor
    def inject_notifications():
        if current_user.is_authenticated:
            # Imported here to avoid a circular import during app initialization.
            from erasmus.models import Notification
            count = Notification.query.filter_by(user_id=current_user.id, is_read=False).count()
            return dict(g_unread_notifications_count=count)
        return dict(g_unread_notifications_count=0)

    @app.context_processor
    def inject_roles():
        from erasmus.models import Role
        return dict(Role=Role)

    # Create any tables that do not exist yet; Alembic migrations remain
    # the source of truth for schema changes on existing databases.
    with app.app_context():
        from erasmus import models
        db.create_all()

    return app
