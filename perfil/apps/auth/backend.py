"""Auth app backend: register, login, logout."""
from flask import request, jsonify
from flask_login import login_required, current_user
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ...auth import set_auth_cookie, clear_auth_cookie
from ...models import db, User


def _json_body():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _text(data, key):
    value = data.get(key)
    return value if isinstance(value, str) else ''


def register(app, platform):

    @app.route('/api/auth/register', methods=['POST'])
    def auth_register():
        data = _json_body()
        name = _text(data, 'name').strip() or None
        email = _text(data, 'email').strip().lower()
        password = _text(data, 'password')
        if not email or not password:
            return jsonify({'error': 'Email and password are required'}), 400

        try:
            if User.query.filter_by(email=email).first():
                return jsonify({'error': 'Email already registered'}), 409
            user = User(name=name, email=email)
            user.set_password(password)
            db.session.add(user)
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            return jsonify({'error': 'Email already registered'}), 409
        except SQLAlchemyError:
            db.session.rollback()
            app.logger.exception('[REGISTER_ERROR]')
            return jsonify({'error': 'Internal server error'}), 500

        resp = jsonify({'success': True, 'user': user.to_dict()})
        set_auth_cookie(resp, platform.tokens.issue(user.id), app.config)
        return resp, 201

    @app.route('/api/auth/login', methods=['POST'])
    def auth_login():
        data = _json_body()
        email = _text(data, 'email').strip().lower()
        password = _text(data, 'password')
        if not email or not password:
            return jsonify({'error': 'Email and password are required'}), 400

        try:
            user = User.query.filter_by(email=email).first()
        except SQLAlchemyError:
            db.session.rollback()
            app.logger.exception('[LOGIN_ERROR]')
            return jsonify({'error': 'Internal server error'}), 500
        # Same answer for unknown email and wrong password.
        if not user or not user.check_password(password):
            return jsonify({'error': 'Invalid credentials'}), 401

        resp = jsonify({'success': True, 'user': {'name': user.name, 'email': user.email}})
        set_auth_cookie(resp, platform.tokens.issue(user.id), app.config)
        return resp

    @app.route('/api/auth/logout', methods=['POST'])
    def auth_logout():
        resp = jsonify({'success': True, 'message': 'Logout realizado com sucesso'})
        clear_auth_cookie(resp, app.config)
        return resp

    @app.route('/api/auth/me')
    @login_required
    def auth_me():
        return jsonify({'user': current_user.to_dict()})
