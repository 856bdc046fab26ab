"""Card persistence: lookups used for deduplication, and card creation."""
import logging

from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError

from .models import db, Card
from .text import normalize_text, canonical

log = logging.getLogger(__name__)


def serialize_card(card):
    return {
        'id': card.id,
        'category': card.category,
        'secret_item': card.secret_item,
        'tips': list(card.tips or []),
        'difficulty': card.difficulty,
        'created_at': card.created_at.isoformat() if card.created_at else None,
    }


def find_card_by_answer(secret_item, category):
    """Return the card in `category` whose answer matches ignoring case,
    accents and extra whitespace, or None."""
    wanted = normalize_text(secret_item)
    cards = Card.query.filter_by(category=canonical(category)).order_by(Card.id).all()
    for card in cards:
        if normalize_text(card.secret_item) == wanted:
            return card
    return None


def find_card_by_category_and_difficulty(category, difficulty, exclude_creator_id=None):
    """Most recent public card for category+difficulty.

    Cards created by `exclude_creator_id` are skipped so a user asking by
    category never gets their own submission back.
    """
    query = Card.query.filter_by(
        category=canonical(category),
        difficulty=canonical(difficulty),
        is_public=True,
    )
    if exclude_creator_id is not None:
        query = query.filter(or_(Card.creator_id.is_(None), Card.creator_id != exclude_creator_id))
    return query.order_by(Card.created_at.desc(), Card.id.desc()).first()


def save_card(category, secret_item, tips, difficulty, creator_id=None):
    card = Card(
        category=canonical(category),
        secret_item=secret_item,
        tips=list(tips),
        difficulty=canonical(difficulty),
        creator_id=creator_id,
        is_public=True,
    )
    db.session.add(card)
    db.session.commit()
    return card


def list_answers_by_category(category):
    """Answers already used in a category, fed to the generator prompt.

    A failed lookup only weakens the prompt, so it degrades to [].
    """
    try:
        rows = db.session.query(Card.secret_item).filter(Card.category == canonical(category)).all()
    except SQLAlchemyError as e:
        db.session.rollback()
        log.error('Failed to list answers for category %r: %s', category, e)
        return []
    return [r.secret_item for r in rows]


def secret_item_exists(category, secret_item):
    """Exact answer check for `category`, ignoring case and surrounding
    whitespace but not accents.

    Part of the card repository API; card resolution uses
    find_card_by_answer instead, which also folds accents.
    """
    return db.session.query(Card.id).filter(
        Card.category == canonical(category),
        func.lower(Card.secret_item) == secret_item.strip().lower(),
    ).first() is not None
