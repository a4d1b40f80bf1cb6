"""Command-line interface for b2py."""
from .main import app

__all__ = ['app']
