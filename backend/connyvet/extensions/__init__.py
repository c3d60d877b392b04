"""Extensiones Flask compartidas (se inicializan en create_app)."""

from .db import db
from .migrate import migrate
from .jwt import jwt
from .ma import ma
from .bcrypt import bcrypt

__all__ = ["db", "migrate", "jwt", "ma", "bcrypt"]
