import os
import logging
from datetime import timedelta

from flask import Flask, current_app, g, jsonify, request
from flask_migrate import Migrate
from sqlalchemy.exc import SQLAlchemyError

from .auth import AuthManager
from .auth_guard import AuthorizationGate, login_required
from .config import Config, DATA_DIR
from .dailies import DailyTaskManager, task_view
from .database import db
from .database_manager import DatabaseManager
from .errors import FreelancerError, UserNotFound
from .forms import DailyTaskForm, DailyTaskTitleForm, LoginForm, OTPForm, ProjectForm, RegisterForm
from .mfa import MFAManager
from .models import RequestContext
from .sessions import SessionIssuer
from .throttle import LoginThrottle

migrate = Migrate()


def create_app(config_object=Config) -> Flask:
    app = Flask(__name__)
    app.config.from_object(config_object)

    logging.basicConfig(
        level=app.config.get('LOG_LEVEL', 'INFO'),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if app.config['SQLALCHEMY_DATABASE_URI'].startswith('sqlite:///') and not app.testing:
        os.makedirs(DATA_DIR, exist_ok=True)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    with app.app_context():
        db.create_all()

    # Managers, one set per process
    sessions = SessionIssuer(
        app.config['JWT_SECRET'],
        algorithm=app.config['JWT_ALGORITHM'],
        ttl=timedelta(days=app.config['JWT_TTL_DAYS']),
    )
    throttle = LoginThrottle(
        max_attempts=app.config['LOGIN_MAX_ATTEMPTS'],
        window_seconds=app.config['LOGIN_WINDOW_SECONDS'],
    )
    mfa_manager = MFAManager(
        issuer_name=app.config['TOTP_ISSUER'],
        valid_window=app.config['TOTP_VALID_WINDOW'],
    )
    db_manager = DatabaseManager()

    app.extensions['db_manager'] = db_manager
    app.extensions['session_issuer'] = sessions
    app.extensions['login_throttle'] = throttle
    app.extensions['authorization_gate'] = AuthorizationGate(sessions)
    app.extensions['auth_manager'] = AuthManager(sessions, throttle, mfa_manager, db_manager)
    app.extensions['daily_task_manager'] = DailyTaskManager(db_manager)

    register_error_handlers(app)
    register_routes(app)
    return app


def _auth_manager() -> AuthManager:
    return current_app.extensions['auth_manager']


def _dailies() -> DailyTaskManager:
    return current_app.extensions['daily_task_manager']


def register_error_handlers(app: Flask) -> None:

    @app.errorhandler(FreelancerError)
    def handle_app_error(error: FreelancerError):
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(SQLAlchemyError)
    def handle_db_error(error: SQLAlchemyError):
        db.session.rollback()
        app.logger.exception("database failure on %s %s", request.method, request.path)
        return jsonify(error='internal_error', message='Something went wrong. Please try again.'), 500


def register_routes(app: Flask) -> None:

    @app.route('/health')
    def health():
        return jsonify(ok=True)

    # auth

    @app.route('/register', methods=['POST'])
    def register():
        form = RegisterForm.from_json().validated()
        user = _auth_manager().register(form.email.data, form.password.data)
        return jsonify(user.to_dict()), 201

    @app.route('/login', methods=['POST'])
    def login():
        form = LoginForm.from_json().validated()
        context = RequestContext.from_request(request)
        token = _auth_manager().login(
            form.email.data,
            form.password.data,
            (form.token.data or "").strip() or None,
            context.client_address,
        )
        return jsonify(token=token)

    @app.route('/me')
    @login_required
    def me():
        user = _auth_manager().find_by_id(g.user_id)
        if not user:
            raise UserNotFound("User not found.")
        return jsonify(user.to_dict())

    @app.route('/2fa/setup', methods=['POST'])
    @login_required
    def setup_2fa():
        manager = _auth_manager()
        enrollment = manager.setup_second_factor(g.user_id)
        return jsonify(
            secret=enrollment.secret,
            otpauthUri=enrollment.otpauth_uri,
            qrCode=manager.mfa.generate_qr_code(enrollment.otpauth_uri),
        )

    @app.route('/2fa/verify', methods=['POST'])
    @login_required
    def verify_2fa():
        form = OTPForm.from_json().validated()
        enabled = _auth_manager().verify_second_factor(g.user_id, form.token.data)
        return jsonify(enabled=enabled)

    # projects

    @app.route('/projects', methods=['GET'])
    @login_required
    def list_projects():
        projects = current_app.extensions['db_manager'].get_projects(g.user_id)
        return jsonify([p.to_dict() for p in projects])

    @app.route('/projects', methods=['POST'])
    @login_required
    def add_project():
        form = ProjectForm.from_json().validated()
        project = current_app.extensions['db_manager'].create_project(g.user_id, form.name.data, form.color.data)
        return jsonify(project.to_dict()), 201

    # daily tasks

    @app.route('/projects/<int:project_id>/dailies', methods=['GET'])
    @login_required
    def list_project_dailies(project_id):
        tasks = _dailies().list_with_today_ensured(g.user_id, project_id)
        return jsonify([task_view(t).to_dict() for t in tasks])

    @app.route('/dailies', methods=['GET'])
    @login_required
    def list_all_dailies():
        tasks = _dailies().list_all(g.user_id)
        return jsonify([task_view(t).to_dict() for t in tasks])

    @app.route('/dailies', methods=['POST'])
    @login_required
    def add_daily():
        form = DailyTaskForm.from_json().validated()
        task = _dailies().add_task(g.user_id, form.projectId.data, form.title.data.strip())
        return jsonify(task_view(task).to_dict()), 201

    @app.route('/dailies/<int:task_id>/toggle', methods=['POST'])
    @login_required
    def toggle_daily(task_id):
        task = _dailies().toggle(g.user_id, task_id)
        return jsonify(task_view(task).to_dict())

    @app.route('/dailies/<int:task_id>', methods=['PATCH'])
    @login_required
    def rename_daily(task_id):
        form = DailyTaskTitleForm.from_json().validated()
        task = _dailies().rename(g.user_id, task_id, form.title.data.strip())
        return jsonify(task_view(task).to_dict())

    @app.route('/dailies/<int:task_id>', methods=['DELETE'])
    @login_required
    def delete_daily(task_id):
        _dailies().delete(g.user_id, task_id)
        return jsonify(deleted=True)
