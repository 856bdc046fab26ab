"""Application factory for the Perfil cards API.

Run a development server with `python -m perfil.app` or the `perfil-cards`
console script. Running `python perfil/app.py` directly fails on the
package-relative imports.
"""
import importlib
import logging

from flask import Flask, current_app, jsonify, request
from flask_login import LoginManager

from .auth import TokenSigner, optional_auth
from .config import load_config
from .generator import CardGenerator
from .models import db
from .text import CATEGORIES, DIFFICULTIES

# Feature modules under perfil/apps/, each exposing register(app, platform).
APPS = ('auth', 'cards')

login_manager = LoginManager()


class Platform:
    """Core services shared by the apps for the life of the process."""

    def __init__(self, generator, tokens, config):
        self.generator = generator
        self.tokens = tokens
        self.config = config


def get_platform(flask_app):
    return flask_app.extensions['perfil']


# ─── Auth wiring ──────────────────────────────────────────────────────

@login_manager.request_loader
def load_user_from_request(req):
    return optional_auth(req, get_platform(current_app).tokens)


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({'error': 'Autenticação obrigatória'}), 401


# ─── Apps loader ──────────────────────────────────────────────────────

def load_apps(flask_app, platform):
    for name in APPS:
        mod = importlib.import_module(f'{__package__}.apps.{name}.backend')
        mod.register(flask_app, platform)


# ─── Factory ──────────────────────────────────────────────────────────

def create_app(config=None, generator=None):
    app = Flask(__name__)
    app.config.update(load_config(config))

    logging.basicConfig(
        level=app.config['LOG_LEVEL'],
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )
    app.logger.setLevel(app.config['LOG_LEVEL'])

    db.init_app(app)
    login_manager.init_app(app)

    platform = Platform(
        generator=generator or CardGenerator.from_config(app.config),
        tokens=TokenSigner(app.config['JWT_SECRET']),
        config=app.config,
    )
    app.extensions['perfil'] = platform

    @app.route('/api/categories')
    def categories():
        return jsonify({'categories': CATEGORIES, 'difficulties': DIFFICULTIES})

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({'error': f'Not found: {request.path}'}), 404

    load_apps(app, platform)

    with app.app_context():
        db.create_all()

    return app


def main():
    create_app().run(debug=True, port=9090)


if __name__ == '__main__':
    main()
