"""Database infrastructure — SQLModel engine."""

from .engine import dispose_engine, get_engine

__all__ = ["dispose_engine", "get_engine"]
