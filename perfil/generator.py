"""Card generation through an external text model.

`CardGenerator` is built once by the app factory and shared for the life of
the process. It only talks HTTP (requests); all it keeps is the backend
coordinates.
"""
import json
import logging
import re
from dataclasses import dataclass, field
from typing import List, Sequence

import requests

from .text import DIFFICULTIES, canonical

log = logging.getLogger(__name__)

TIPS_PER_CARD = 20
GENERIC_FAILURE = 'Falha ao gerar carta. Tente novamente.'

SPECIAL_TIPS = """   - "Perca a vez"
   - "Um palpite a qualquer hora"
   - "Avance X casas" (X = 1, 2, or 3)
   - "Volte X casas" (X = 1, 2, or 3)
   - "Escolha um jogador para voltar X casas" (X = 1, 2, or 3)"""


class GenerationError(Exception):
    status = 500

    def __init__(self, message=GENERIC_FAILURE):
        super().__init__(message)
        self.message = message


@dataclass
class GeneratedCard:
    category: str
    secret_item: str
    difficulty: str
    tips: List[str] = field(default_factory=list)


# ─── Prompts ──────────────────────────────────────────────────────────

def build_prompt(category, secret_item=None, difficulty=None, existing_answers=()):
    existing = list(existing_answers)
    if secret_item:
        if existing:
            existing_text = ('\n\nEXISTING CARDS IN THIS CATEGORY (DO NOT duplicate these):\n'
                             + '\n'.join(f'- {item}' for item in existing))
        else:
            existing_text = '\n\nNo existing cards in this category yet.'
        return f"""
You are a card generator for the "Perfil" game.

Create a card for category "{category}" with the answer being "{secret_item}".
{existing_text}

Important rules:
1. Generate exactly {TIPS_PER_CARD} tips in Portuguese
2. Tips should have RANDOM difficulty - don't make them progressive (tip 15 can be easier than tip 7, for example)
3. Never directly mention the answer name in the tips
4. Tips should be interesting and educational
5. Automatically determine difficulty based on item popularity (fácil, médio, difícil)
6. Include 0 to 2 special tips randomly from these options:
{SPECIAL_TIPS}
7. Special tips are part of the {TIPS_PER_CARD} tips, not extra
8. All content should be in Portuguese
9. The secret_item "{secret_item}" should be exactly as provided (maintain case and accents)

Respond ONLY in valid JSON format:
{{
  "category": "{category}",
  "secret_item": "{secret_item}",
  "tips": ["tip 1", "tip 2", ..., "tip {TIPS_PER_CARD}"],
  "difficulty": "fácil|médio|difícil"
}}
"""

    difficulty = difficulty or 'médio'
    if existing:
        existing_text = ('\n\nEXISTING CARDS IN THIS CATEGORY (DO NOT choose these secret_items):\n'
                         + '\n'.join(f'- {item}' for item in existing)
                         + '\n\nIMPORTANT: Choose a DIFFERENT item that is NOT in the list above!')
    else:
        existing_text = '\n\nNo existing cards in this category yet.'
    return f"""
You are a card generator for the "Perfil" game.

Create a card for category "{category}" with difficulty "{difficulty}".
{existing_text}

Important rules:
1. Choose an appropriate item for the specified category and difficulty
2. For "fácil" difficulty: choose something very well-known and popular
3. For "médio" difficulty: choose something known but not obvious
4. For "difícil" difficulty: choose something less known or more specific
5. CRITICAL: The secret_item you choose MUST NOT be in the existing cards list above
6. Generate exactly {TIPS_PER_CARD} tips in Portuguese
7. Tips should have RANDOM difficulty - don't make them progressive
8. Never directly mention the answer name in the tips
9. Include 0 to 2 special tips randomly from these options:
{SPECIAL_TIPS}
10. Special tips are part of the {TIPS_PER_CARD} tips, not extra
11. All content should be in Portuguese

Respond ONLY in valid JSON format:
{{
  "category": "{category}",
  "secret_item": "nome do item escolhido",
  "tips": ["tip 1", "tip 2", ..., "tip {TIPS_PER_CARD}"],
  "difficulty": "{difficulty}"
}}
"""


# ─── Response parsing ─────────────────────────────────────────────────

_THINK = re.compile(r'<think>.*?</think>', re.DOTALL)
_FENCE = re.compile(r'```(?:json)?\n?')


def clean_response(text):
    """Drop <think> blocks (e.g. qwen3) and markdown code fences."""
    text = _THINK.sub('', text)
    return _FENCE.sub('', text).strip()


def parse_generated_card(text, existing_answers=(), category_mode=False):
    """Parse and validate a model reply. Raises ValueError on any problem."""
    data = json.loads(clean_response(text))
    if not isinstance(data, dict):
        raise ValueError('Model reply is not a JSON object')
    for key in ('category', 'secret_item', 'tips', 'difficulty'):
        if not data.get(key):
            raise ValueError(f'Model reply is missing {key!r}')

    tips = data['tips']
    if not isinstance(tips, list) or len(tips) != TIPS_PER_CARD:
        raise ValueError(f'Expected {TIPS_PER_CARD} tips, got {len(tips) if isinstance(tips, list) else tips!r}')
    if not all(isinstance(t, str) and t.strip() for t in tips):
        raise ValueError('Every tip must be a non-empty string')

    difficulty = canonical(str(data['difficulty']))
    if difficulty not in DIFFICULTIES:
        raise ValueError(f'Unknown difficulty {data["difficulty"]!r}')

    secret_item = str(data['secret_item']).strip()
    if category_mode:
        taken = {a.strip().lower() for a in existing_answers}
        if secret_item.lower() in taken:
            raise ValueError(f'Model picked an existing answer: {secret_item}')

    return GeneratedCard(
        category=str(data['category']).strip(),
        secret_item=secret_item,
        difficulty=difficulty,
        tips=[t.strip() for t in tips],
    )


# ─── Client ───────────────────────────────────────────────────────────

class CardGenerator:
    """Talks to one text-model backend: gemini, ollama or openai-compatible."""

    KINDS = ('gemini', 'ollama', 'openai')

    def __init__(self, kind, base_url, model, api_key='', timeout=60):
        if kind not in self.KINDS:
            raise ValueError(f'Unknown generator backend {kind!r}')
        self.kind = kind
        self.base_url = base_url.rstrip('/')
        self.model = model
        self.api_key = api_key
        self.timeout = timeout

    @classmethod
    def from_config(cls, config):
        return cls(
            kind=config['GENERATOR_BACKEND'],
            base_url=config['GENERATOR_BASE_URL'],
            model=config['GENERATOR_MODEL'],
            api_key=config.get('GENERATOR_API_KEY', ''),
            timeout=config.get('GENERATOR_TIMEOUT', 60),
        )

    def complete(self, prompt):
        """Send a single prompt and return the model's text reply."""
        if self.kind == 'gemini':
            return self._complete_gemini(prompt)
        if self.kind == 'ollama':
            return self._complete_ollama(prompt)
        return self._complete_openai_compat(prompt)

    def _complete_gemini(self, prompt):
        if not self.api_key:
            raise RuntimeError('GEMINI_API_KEY not set in environment.')
        resp = requests.post(
            f'{self.base_url}/v1beta/models/{self.model}:generateContent',
            params={'key': self.api_key},
            json={'contents': [{'role': 'user', 'parts': [{'text': prompt}]}]},
            timeout=self.timeout,
        )
        resp.raise_for_status()
        candidates = resp.json().get('candidates') or [{}]
        parts = candidates[0].get('content', {}).get('parts', [])
        return ''.join(p.get('text', '') for p in parts)

    def _complete_ollama(self, prompt):
        resp = requests.post(f'{self.base_url}/api/chat', json={
            'model': self.model,
            'messages': [{'role': 'user', 'content': prompt}],
            'stream': False,
        }, timeout=self.timeout)
        resp.raise_for_status()
        return resp.json().get('message', {}).get('content', '')

    def _complete_openai_compat(self, prompt):
        headers = {'Content-Type': 'application/json'}
        if self.api_key:
            headers['Authorization'] = f'Bearer {self.api_key}'
        resp = requests.post(f'{self.base_url}/v1/chat/completions', json={
            'model': self.model,
            'messages': [{'role': 'user', 'content': prompt}],
        }, headers=headers, timeout=self.timeout)
        resp.raise_for_status()
        return resp.json().get('choices', [{}])[0].get('message', {}).get('content', '')

    def generate(self, category, secret_item=None, difficulty=None,
                 existing_answers: Sequence[str] = ()) -> GeneratedCard:
        """Generate one card.

        With `secret_item` the model writes tips for that answer (answer
        mode); without it the model picks an answer of the given difficulty
        that is not in `existing_answers` (category mode). Every failure is
        logged and reported as a GenerationError with a generic message.
        """
        category_mode = not secret_item
        prompt = build_prompt(category, secret_item, difficulty, existing_answers)
        try:
            text = self.complete(prompt)
            card = parse_generated_card(text, existing_answers, category_mode=category_mode)
        except (requests.RequestException, RuntimeError, ValueError,
                KeyError, IndexError, AttributeError, TypeError) as e:
            log.error('Card generation failed (%s backend, category=%r): %s', self.kind, category, e)
            raise GenerationError() from e

        if secret_item:
            card.secret_item = secret_item
        elif difficulty:
            card.difficulty = canonical(difficulty)
        card.category = canonical(category)
        return card
