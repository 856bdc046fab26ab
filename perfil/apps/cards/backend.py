"""Cards app backend: generation, history and unused-card lookup."""
from flask import request, jsonify
from flask_login import login_required, current_user
from sqlalchemy.exc import SQLAlchemyError

from ...auth import current_identity
from ...cards import serialize_card
from ...generator import GenerationError
from ...models import db
from ...text import is_valid_category, is_valid_difficulty
from ...user_cards import count_unused_cards, find_unused_card, get_user_card_history
from ...workflow import ResolutionError, resolve_card


def register(app, platform):

    @app.route('/api/cards/generate', methods=['POST'])
    def generate_card():
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            data = {}
        identity = current_identity(current_user)
        try:
            result = resolve_card(
                platform.generator,
                category=data.get('category'),
                secret_item=data.get('secretItem'),
                difficulty=data.get('difficulty'),
                identity=identity,
            )
        except (ResolutionError, GenerationError) as e:
            return jsonify({'error': e.message}), e.status
        except SQLAlchemyError:
            db.session.rollback()
            app.logger.exception('Card generation failed on the database')
            return jsonify({'error': 'Erro interno do servidor'}), 500
        except Exception:
            app.logger.exception('Card generation failed')
            return jsonify({'error': 'Erro interno do servidor'}), 500

        body = {
            'success': True,
            'card': serialize_card(result.card),
            'message': result.message,
            'fromDatabase': result.from_database,
        }
        if result.warnings:
            body['warnings'] = result.warnings
        return jsonify(body)

    @app.route('/api/cards/history')
    @login_required
    def card_history():
        limit = min(request.args.get('limit', 50, type=int), 200)
        history = get_user_card_history(current_user.id, limit=max(1, limit))
        return jsonify({'history': [{
            'card': serialize_card(uc.card),
            'used_at': uc.created_at.isoformat() if uc.created_at else None,
        } for uc in history]})

    @app.route('/api/cards/unused')
    @login_required
    def unused_card():
        category = request.args.get('category', '')
        difficulty = request.args.get('difficulty', '')
        if not is_valid_category(category):
            return jsonify({'error': 'Categoria inválida'}), 400
        if not is_valid_difficulty(difficulty):
            return jsonify({'error': 'Dificuldade inválida. Use: fácil, médio ou difícil'}), 400
        card = find_unused_card(current_user.id, category, difficulty)
        return jsonify({
            'count': count_unused_cards(current_user.id, category, difficulty),
            'card': serialize_card(card) if card else None,
        })
