"""
Configuration package for Playout

Two components:

1. Settings Management (settings.py):
   - Application configuration from YAML files and environment variables
   - Settings validation and persistence

2. Token Storage (auth.py):
   - Device pairing code and bearer credentials
   - Synchronous persistence of renewed access tokens

Usage:

    from playout.config import get_settings, get_token_store

    settings = get_settings()
    tokens = get_token_store()
"""

from .settings import get_settings, reload_settings, Settings
from .auth import get_token_store, reset_token_store, TokenStore

__all__ = [
    # Settings management
    'get_settings',
    'reload_settings',
    'Settings',

    # Token storage
    'get_token_store',
    'reset_token_store',
    'TokenStore',
]
