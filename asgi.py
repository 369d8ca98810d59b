"""
asgi.py -- ASGI entry point for SecretShare.

Builds the app once from the environment. Everything else receives the
settings through create_app().

Run with:  uvicorn asgi:app --reload
           python main.py
"""

from api.main import create_app
from core.config import get_settings

app = create_app(get_settings())
