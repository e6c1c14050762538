"""Run minihttp handlers behind other transports."""

from .wsgi import WSGIAdapter

__all__ = ["WSGIAdapter"]
