"""
Shared fixtures: an app on an in-memory SQLite database with a fake card
generator injected, so no test ever reaches a real model.
"""
import pytest

from perfil import create_app
from perfil.generator import GeneratedCard, GenerationError
from perfil.models import db as _db


class FakeGenerator:
    """Stands in for CardGenerator and remembers every call."""

    def __init__(self):
        self.calls = []
        self.answers = ['Ayrton Senna', 'Tom Jobim', 'Carmen Miranda']
        self.fail = False

    def generate(self, category, secret_item=None, difficulty=None, existing_answers=()):
        self.calls.append({
            'category': category,
            'secret_item': secret_item,
            'difficulty': difficulty,
            'existing_answers': list(existing_answers),
        })
        if self.fail:
            raise GenerationError()
        if secret_item:
            answer = secret_item
        else:
            taken = {a.strip().lower() for a in existing_answers}
            answer = next(a for a in self.answers if a.lower() not in taken)
        return GeneratedCard(
            category=category.lower(),
            secret_item=answer,
            difficulty=(difficulty or 'médio').lower(),
            tips=[f'Dica {i}' for i in range(1, 21)],
        )


TEST_CONFIG = {
    'TESTING': True,
    'SQLALCHEMY_DATABASE_URI': 'sqlite://',
    'JWT_SECRET': 'test-jwt-secret',
    'SECRET_KEY': 'test-secret-key',
    'APP_ENV': 'test',
    'LOG_LEVEL': 'WARNING',
}


# ── Fixtures ──────────────────────────────────────────────────

@pytest.fixture()
def generator():
    return FakeGenerator()


@pytest.fixture()
def app(generator):
    app = create_app(TEST_CONFIG, generator=generator)
    yield app
    with app.app_context():
        _db.session.remove()
        _db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def ctx(app):
    """Application context for calling repository functions directly."""
    with app.app_context():
        yield app


# ── Helpers ───────────────────────────────────────────────────

def register(client, email='a@x.com', password='secret123', name='Ana'):
    return client.post('/api/auth/register', json={'name': name, 'email': email, 'password': password})


def make_user(email='u@x.com', name='User'):
    from perfil.models import User
    user = User(email=email, name=name)
    user.set_password('pw123456')
    _db.session.add(user)
    _db.session.commit()
    return user
