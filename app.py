import logging

import click
from dotenv import load_dotenv
from email_validator import EmailNotValidError, validate_email
from flask import Flask, jsonify
from flask_login import LoginManager
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

load_dotenv()

from config import Config
from errors import DependencyError, ElectionError, ValidationError
from models import ROLE_ADMIN, Administrator, db
from payments import init_payment_gateway
from services.sessions import principal_from_request
from utils import init_mailer

logger = logging.getLogger(__name__)

login_manager = LoginManager()


@login_manager.request_loader
def load_principal(request):
    return principal_from_request(request)


def register_error_handlers(app):

    @app.errorhandler(ElectionError)
    def handle_election_error(e):
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(SQLAlchemyError)
    def handle_store_error(e):
        db.session.rollback()
        logger.exception('Database error')
        error = DependencyError('The database is unavailable. Please try again.')
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return jsonify({
            'success': False,
            'message': e.description,
            'error': e.name.lower().replace(' ', '_'),
        }), e.code


def ensure_admin(email, name):
    """Creates the administrator account if it does not exist yet.

    The address is checked the way the login form checks it.
    """
    try:
        email = validate_email(email.strip(), check_deliverability=False).normalized.lower()
    except EmailNotValidError as e:
        raise ValidationError(f'Invalid admin email {email!r}: {e}')
    admin = Administrator.query.filter_by(email=email).first()
    if admin:
        return admin, False
    admin = Administrator(email=email, name=name, role=ROLE_ADMIN)
    db.session.add(admin)
    db.session.commit()
    return admin, True


def register_commands(app):

    @app.cli.command('create-admin')
    @click.argument('email')
    @click.option('--name', default='Administrator', help='Display name.')
    def create_admin_command(email, name):
        """Add an administrator who can log in with an emailed code."""
        try:
            _, created = ensure_admin(email, name)
        except ValidationError as e:
            raise click.BadParameter(e.message, param_hint='EMAIL')
        click.echo(f'Admin {email} created.' if created else f'Admin {email} already exists.')

    @app.cli.command('setup-gmail')
    def setup_gmail_command():
        """Authorize Gmail API sending and write the token file."""
        from setup_gmail import setup_gmail_auth
        ok = setup_gmail_auth(app.config['GMAIL_CREDENTIALS_PATH'], app.config['GMAIL_TOKEN_PATH'])
        if not ok:
            raise click.ClickException('Gmail authorization failed.')


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    logging.basicConfig(
        level=app.config['LOG_LEVEL'],
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    db.init_app(app)
    login_manager.init_app(app)
    init_mailer(app)
    init_payment_gateway(app)

    register_error_handlers(app)
    register_commands(app)

    from routes.admin import admin_bp
    from routes.subadmin import subadmin_bp
    from routes.public import public_bp

    app.register_blueprint(admin_bp, url_prefix='/admin')
    app.register_blueprint(subadmin_bp, url_prefix='/subadmin')
    app.register_blueprint(public_bp, url_prefix='/')

    # Create database structure eagerly for this simple app
    with app.app_context():
        db.create_all()
        admin, created = ensure_admin(app.config['ADMIN_EMAIL'], app.config['ADMIN_NAME'])
        if created:
            logger.info('Default admin created: %s', admin.email)

    return app


if __name__ == '__main__':
    app = create_app()
    app.run(debug=True)
