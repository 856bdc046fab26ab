"""
Tests for perfil/auth.py and the /api/auth/* endpoints.
"""
from datetime import timedelta
from unittest.mock import patch

import pytest
from sqlalchemy.exc import IntegrityError

from perfil.auth import COOKIE_NAME, TokenSigner, optional_auth, set_auth_cookie
from perfil.models import db, User

from conftest import register


# ── Tokens ────────────────────────────────────────────────────

class TestTokenSigner:
    def test_round_trip(self):
        tokens = TokenSigner('s3cret')
        claims = tokens.verify(tokens.issue(42))
        assert claims['sub'] == '42'
        assert claims['exp'] - claims['iat'] == 24 * 60 * 60

    def test_expired(self):
        tokens = TokenSigner('s3cret', ttl=timedelta(seconds=-5))
        assert tokens.verify(tokens.issue(1)) is None

    def test_wrong_secret(self):
        token = TokenSigner('one').issue(1)
        assert TokenSigner('two').verify(token) is None

    def test_garbage(self):
        assert TokenSigner('s3cret').verify('not.a.jwt') is None

    def test_missing_secret(self):
        with pytest.raises(RuntimeError):
            TokenSigner('')


class TestOptionalAuth:
    def _tokens(self, app):
        return app.extensions['perfil'].tokens

    def test_bearer_header(self, app, ctx):
        user = User(email='h@x.com')
        user.set_password('pw')
        db.session.add(user)
        db.session.commit()
        token = self._tokens(app).issue(user.id)
        with app.test_request_context(headers={'Authorization': f'Bearer {token}'}) as rc:
            assert optional_auth(rc.request, self._tokens(app)).id == user.id

    def test_cookie(self, app, ctx):
        user = User(email='c@x.com')
        user.set_password('pw')
        db.session.add(user)
        db.session.commit()
        token = self._tokens(app).issue(user.id)
        with app.test_request_context(headers={'Cookie': f'{COOKIE_NAME}={token}'}) as rc:
            assert optional_auth(rc.request, self._tokens(app)).id == user.id

    def test_deleted_user_yields_nothing(self, app, ctx):
        token = self._tokens(app).issue(9999)
        with app.test_request_context(headers={'Authorization': f'Bearer {token}'}) as rc:
            assert optional_auth(rc.request, self._tokens(app)) is None

    def test_no_token(self, app, ctx):
        with app.test_request_context() as rc:
            assert optional_auth(rc.request, self._tokens(app)) is None


class TestCookie:
    def test_production_cookie_attributes(self, app):
        config = {'APP_ENV': 'production', 'COOKIE_DOMAIN': 'perfil.example'}
        resp = set_auth_cookie(app.response_class(), 'tok', config)
        header = resp.headers['Set-Cookie']
        assert header.startswith(f'{COOKIE_NAME}=tok')
        assert 'Secure' in header
        assert 'SameSite=Strict' in header
        assert 'Domain=perfil.example' in header
        assert 'Max-Age=86400' in header
        assert 'HttpOnly' not in header

    def test_development_cookie_is_not_secure(self, app):
        resp = set_auth_cookie(app.response_class(), 'tok', {'APP_ENV': 'development', 'COOKIE_DOMAIN': 'x'})
        header = resp.headers['Set-Cookie']
        assert 'Secure' not in header
        assert 'Domain' not in header


# ── Endpoints ─────────────────────────────────────────────────

class TestRegister:
    def test_register_sets_cookie(self, client):
        resp = register(client)
        assert resp.status_code == 201
        body = resp.get_json()
        assert body['success'] is True
        assert body['user']['email'] == 'a@x.com'
        assert body['user']['name'] == 'Ana'
        assert 'id' in body['user']
        assert client.get_cookie(COOKIE_NAME) is not None

    def test_duplicate_email_conflicts(self, client):
        assert register(client).status_code == 201
        resp = register(client)
        assert resp.status_code == 409
        assert resp.get_json()['error'] == 'Email already registered'

    def test_missing_fields(self, client):
        resp = client.post('/api/auth/register', json={'email': 'a@x.com'})
        assert resp.status_code == 400

    def test_non_string_fields(self, client):
        resp = client.post('/api/auth/register', json={'email': 123, 'password': 'secret123'})
        assert resp.status_code == 400
        assert resp.get_json() == {'error': 'Email and password are required'}

    def test_array_body(self, client):
        resp = client.post('/api/auth/register', json=['a'])
        assert resp.status_code == 400
        assert 'error' in resp.get_json()

    def test_concurrent_duplicate_insert_conflicts(self, client, app):
        # The existence check passed but another request committed the email first.
        failure = IntegrityError('INSERT', {}, Exception('UNIQUE constraint failed: users.email'))
        with patch.object(db.session, 'commit', side_effect=failure):
            resp = register(client)
        assert resp.status_code == 409
        assert resp.get_json() == {'error': 'Email already registered'}
        with app.app_context():
            assert User.query.count() == 0

    def test_password_is_hashed(self, client, app):
        register(client)
        with app.app_context():
            user = User.query.filter_by(email='a@x.com').first()
            assert user.password_hash != 'secret123'
            assert user.check_password('secret123')


class TestLogin:
    def test_login_ok(self, client):
        register(client)
        client.post('/api/auth/logout')
        resp = client.post('/api/auth/login', json={'email': 'a@x.com', 'password': 'secret123'})
        assert resp.status_code == 200
        assert resp.get_json() == {'success': True, 'user': {'name': 'Ana', 'email': 'a@x.com'}}
        assert client.get_cookie(COOKIE_NAME) is not None

    def test_wrong_password_and_unknown_email_look_the_same(self, client):
        register(client)
        wrong = client.post('/api/auth/login', json={'email': 'a@x.com', 'password': 'nope'})
        unknown = client.post('/api/auth/login', json={'email': 'b@x.com', 'password': 'secret123'})
        assert wrong.status_code == unknown.status_code == 401
        assert wrong.get_json() == unknown.get_json() == {'error': 'Invalid credentials'}

    def test_missing_fields(self, client):
        assert client.post('/api/auth/login', json={'email': 'a@x.com'}).status_code == 400

    def test_non_string_password(self, client):
        register(client)
        resp = client.post('/api/auth/login', json={'email': 'a@x.com', 'password': 123})
        assert resp.status_code == 400
        assert resp.get_json() == {'error': 'Email and password are required'}

    def test_array_body(self, client):
        assert client.post('/api/auth/login', json=['a']).status_code == 400


class TestLogoutAndMe:
    def test_me_with_cookie(self, client):
        register(client)
        resp = client.get('/api/auth/me')
        assert resp.status_code == 200
        assert resp.get_json()['user']['email'] == 'a@x.com'

    def test_me_with_bearer(self, client, app):
        user_id = register(client).get_json()['user']['id']
        client.delete_cookie(COOKIE_NAME)
        token = app.extensions['perfil'].tokens.issue(user_id)
        resp = client.get('/api/auth/me', headers={'Authorization': f'Bearer {token}'})
        assert resp.status_code == 200

    def test_logout_clears_cookie(self, client):
        register(client)
        resp = client.post('/api/auth/logout')
        assert resp.get_json() == {'success': True, 'message': 'Logout realizado com sucesso'}
        assert client.get_cookie(COOKIE_NAME) is None
        assert client.get('/api/auth/me').status_code == 401

    def test_me_requires_auth(self, client):
        resp = client.get('/api/auth/me')
        assert resp.status_code == 401
        assert resp.get_json() == {'error': 'Autenticação obrigatória'}

    def test_invalid_token_is_anonymous(self, client):
        resp = client.get('/api/auth/me', headers={'Authorization': 'Bearer garbage'})
        assert resp.status_code == 401
