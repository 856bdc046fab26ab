"""Decide whether a generation request reuses a stored card or asks the model.

Two modes:

* answer mode (`secret_item` given): anyone may ask; a stored card whose
  answer matches after normalization is returned instead of generating.
* category mode (category + difficulty): requires an identity; the newest
  public card of that category/difficulty not created by the caller is
  reused, otherwise the model picks a fresh answer.

Lookup, generation and insert are not serialized, so two simultaneous
answer-mode requests for the same new answer may both generate and store a
card. Usage bookkeeping is best effort: failures end up in
`Resolution.warnings` and never fail the request.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError

from .auth import Identity
from .cards import (
    find_card_by_answer,
    find_card_by_category_and_difficulty,
    list_answers_by_category,
    save_card,
)
from .models import db, Card
from .text import is_valid_category, is_valid_difficulty
from .user_cards import record_user_card

log = logging.getLogger(__name__)

MSG_FROM_DATABASE = 'Carta já existe no banco de dados'
MSG_GENERATED = 'Carta gerada com sucesso'


class ResolutionError(Exception):
    status = 400

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class InvalidRequest(ResolutionError):
    status = 400


class AuthenticationRequired(ResolutionError):
    status = 401


@dataclass
class Resolution:
    card: Card
    from_database: bool
    message: str
    warnings: List[str] = field(default_factory=list)


def _record_usage(identity, card, warnings):
    if identity is None:
        return
    try:
        record_user_card(identity.id, card.id)
    except SQLAlchemyError as e:
        db.session.rollback()
        log.error('Failed to record card %s for user %s: %s', card.id, identity.id, e)
        warnings.append('Não foi possível registrar o uso da carta')


def resolve_card(generator, category, secret_item=None, difficulty=None,
                 identity: Optional[Identity] = None) -> Resolution:
    if not category or not isinstance(category, str):
        raise InvalidRequest('Categoria é obrigatória')
    if not is_valid_category(category):
        raise InvalidRequest('Categoria inválida')
    category = category.strip()

    if secret_item:
        return _resolve_by_answer(generator, category, secret_item, identity)
    return _resolve_by_category(generator, category, difficulty, identity)


def _resolve_by_answer(generator, category, secret_item, identity):
    if not isinstance(secret_item, str) or not secret_item.strip():
        raise InvalidRequest('Resposta da carta é obrigatória')
    secret_item = secret_item.strip()
    warnings = []

    existing = find_card_by_answer(secret_item, category)
    if existing:
        _record_usage(identity, existing, warnings)
        return Resolution(existing, True, MSG_FROM_DATABASE, warnings)

    existing_answers = list_answers_by_category(category)
    generated = generator.generate(category, secret_item=secret_item, existing_answers=existing_answers)
    card = save_card(
        category=generated.category,
        secret_item=generated.secret_item,
        tips=generated.tips,
        difficulty=generated.difficulty,
        creator_id=identity.id if identity else None,
    )
    _record_usage(identity, card, warnings)
    return Resolution(card, False, MSG_GENERATED, warnings)


def _resolve_by_category(generator, category, difficulty, identity):
    if identity is None:
        raise AuthenticationRequired(
            'Para gerar carta por categoria e dificuldade, você precisa estar logado')
    if not difficulty or not isinstance(difficulty, str):
        raise InvalidRequest('Dificuldade é obrigatória quando não especificada a resposta')
    if not is_valid_difficulty(difficulty):
        raise InvalidRequest('Dificuldade inválida. Use: fácil, médio ou difícil')
    difficulty = difficulty.strip()
    warnings = []

    existing = find_card_by_category_and_difficulty(category, difficulty, exclude_creator_id=identity.id)
    if existing:
        _record_usage(identity, existing, warnings)
        return Resolution(existing, True, MSG_FROM_DATABASE, warnings)

    existing_answers = list_answers_by_category(category)
    generated = generator.generate(category, difficulty=difficulty, existing_answers=existing_answers)
    card = save_card(
        category=generated.category,
        secret_item=generated.secret_item,
        tips=generated.tips,
        difficulty=generated.difficulty,
        creator_id=identity.id,
    )
    _record_usage(identity, card, warnings)
    return Resolution(card, False, MSG_GENERATED, warnings)
