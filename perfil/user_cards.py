"""Usage ledger: which user has been served which card.

Each (user, card) pair is recorded once; the composite primary key on
user_cards backs that up when two requests race.
"""
import random

from sqlalchemy.exc import IntegrityError

from .models import db, Card, UserCard
from .text import canonical


def record_user_card(user_id, card_id):
    existing = db.session.get(UserCard, (user_id, card_id))
    if existing:
        return existing
    record = UserCard(user_id=user_id, card_id=card_id)
    db.session.add(record)
    try:
        db.session.commit()
    except IntegrityError:
        # Someone else recorded the same pair first.
        db.session.rollback()
        return db.session.get(UserCard, (user_id, card_id))
    return record


def has_user_used_card(user_id, card_id):
    return db.session.get(UserCard, (user_id, card_id)) is not None


def _used_card_ids(user_id):
    rows = db.session.query(UserCard.card_id).filter_by(user_id=user_id).all()
    return {r.card_id for r in rows}


def _unused_cards(user_id, category, difficulty):
    used = _used_card_ids(user_id)
    cards = Card.query.filter_by(category=canonical(category), difficulty=canonical(difficulty)).all()
    return [c for c in cards if c.id not in used]


def find_unused_card(user_id, category, difficulty):
    candidates = _unused_cards(user_id, category, difficulty)
    if not candidates:
        return None
    return random.choice(candidates)


def count_unused_cards(user_id, category, difficulty):
    return len(_unused_cards(user_id, category, difficulty))


def get_user_card_history(user_id, limit=50):
    return UserCard.query.filter_by(user_id=user_id)\
        .order_by(UserCard.created_at.desc()).limit(limit).all()


def count_card_usage(card_id):
    return UserCard.query.filter_by(card_id=card_id).count()
