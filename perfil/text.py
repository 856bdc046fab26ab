"""Text helpers shared by card lookup and request validation."""
import re
import unicodedata

CATEGORIES = [
    'pessoa',
    'lugar',
    'objeto',
    'animal',
    'profissão',
    'filme',
    'música',
    'comida',
    'esporte',
    'marca',
    'celebridade',
    'personagem',
]

DIFFICULTIES = ['fácil', 'médio', 'difícil']

_COMBINING = re.compile('[\u0300-\u036f]')
_SPACES = re.compile(r'\s+')


def normalize_text(text):
    """Lowercase, strip accents and collapse whitespace."""
    text = unicodedata.normalize('NFD', text.lower())
    text = _COMBINING.sub('', text)
    return _SPACES.sub(' ', text).strip()


def is_same_text(a, b):
    return normalize_text(a) == normalize_text(b)


def _key(value):
    # Whitelists are stored precomposed; requests may arrive decomposed.
    return unicodedata.normalize('NFC', value.strip().lower())


def is_valid_category(category):
    return _key(category) in CATEGORIES


def is_valid_difficulty(difficulty):
    return _key(difficulty) in DIFFICULTIES


def canonical(value):
    """Lowercased, trimmed, NFC form used when storing category/difficulty."""
    return _key(value)
