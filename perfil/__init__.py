"""Perfil card service: AI-generated guessing-game cards over a JSON API."""
from .app import create_app

__all__ = ['create_app']
