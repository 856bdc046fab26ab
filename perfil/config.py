import os

DEFAULT_BASE_URLS = {
    'gemini': 'https://generativelanguage.googleapis.com',
    'ollama': 'http://localhost:11434',
    'openai': 'https://api.openai.com',
}

DEFAULT_MODELS = {
    'gemini': 'gemini-1.5-flash',
    'ollama': 'llama3.2',
    'openai': 'gpt-4o-mini',
}


def load_config(overrides=None):
    """Build the app config from the environment, then apply overrides."""
    backend = os.environ.get('GENERATOR_BACKEND', 'gemini').strip().lower()
    config = {
        'SECRET_KEY': os.environ.get('SECRET_KEY', 'perfil-dev-secret-key'),
        'JWT_SECRET': os.environ.get('JWT_SECRET', ''),
        'SQLALCHEMY_DATABASE_URI': os.environ.get('DATABASE_URL', 'sqlite:///perfil.db'),
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'APP_ENV': os.environ.get('APP_ENV', 'development'),
        'COOKIE_DOMAIN': os.environ.get('COOKIE_DOMAIN') or None,
        'LOG_LEVEL': os.environ.get('LOG_LEVEL', 'INFO'),
        'GENERATOR_BACKEND': backend,
        'GENERATOR_BASE_URL': os.environ.get('GENERATOR_BASE_URL', DEFAULT_BASE_URLS.get(backend, '')),
        'GENERATOR_MODEL': os.environ.get('GENERATOR_MODEL', DEFAULT_MODELS.get(backend, '')),
        'GENERATOR_API_KEY': (os.environ.get('GEMINI_API_KEY')
                              or os.environ.get('GENERATOR_API_KEY', '')).strip(),
        'GENERATOR_TIMEOUT': float(os.environ.get('GENERATOR_TIMEOUT', '60')),
    }
    if overrides:
        config.update(overrides)
    return config


def is_production(config):
    return config.get('APP_ENV') == 'production'
