"""
Account routes: register, log in, log out.
"""
from flask import Blueprint, current_app, jsonify
from flask_login import current_user, login_required, login_user, logout_user
from flask_wtf.csrf import generate_csrf
from sqlalchemy.exc import SQLAlchemyError

from journal_press.errors import BackendUnavailableError
from journal_press.models import utcnow

from .app import error_response
from .database import User, db
from .extensions import limiter
from .forms import LoginForm, RegistrationForm, first_error

auth_bp = Blueprint('auth', __name__, url_prefix='/api/auth')


def form_error_response(form):
    field, message = first_error(form)
    return jsonify({'error': message, 'field': field}), 400


@auth_bp.route('/register', methods=['POST'])
@limiter.limit("5 per minute")
def register():
    form = RegistrationForm()
    if not form.validate_on_submit():
        return form_error_response(form)

    email = form.email.data.strip().lower()
    if User.query.filter_by(email=email).first():
        return error_response('An account with this email already exists.', 400)

    user = User(email=email, full_name=(form.full_name.data or '').strip() or None)
    user.set_password(form.password.data)
    try:
        db.session.add(user)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Error creating user: {e}")
        raise BackendUnavailableError('Could not create the account. Please try again later.')

    login_user(user)
    current_app.logger.info(f"User registered: {user.id}")
    return jsonify({'user': user.to_dict()}), 201


@auth_bp.route('/login', methods=['POST'])
@limiter.limit("10 per minute")
def login():
    form = LoginForm()
    if not form.validate_on_submit():
        return form_error_response(form)

    email = form.email.data.strip().lower()
    user = User.query.filter_by(email=email).first()
    if user is None or not user.check_password(form.password.data):
        current_app.logger.warning(f"Failed login for {email}")
        return error_response('Invalid email or password.', 401)

    user.last_login = utcnow()
    db.session.commit()
    login_user(user, remember=bool(form.remember.data))
    return jsonify({'user': user.to_dict()})


@auth_bp.route('/logout', methods=['POST'])
@login_required
def logout():
    logout_user()
    return jsonify({'success': True})


@auth_bp.route('/me')
def me():
    if not current_user.is_authenticated:
        return error_response('You need to be logged in.', 401)
    return jsonify({'user': current_user.to_dict()})


@auth_bp.route('/csrf')
def csrf_token():
    """Token for the X-CSRFToken header on state-changing requests."""
    return jsonify({'csrf_token': generate_csrf()})
