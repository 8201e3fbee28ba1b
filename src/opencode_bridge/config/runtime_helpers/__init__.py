"""Helpers backing the environment configuration layer."""

from .dotenv_loader import DotenvLoader

__all__ = ["DotenvLoader"]
