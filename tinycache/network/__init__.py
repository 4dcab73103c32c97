"""Network module for TinyCache."""

from .tcp_server import TinyCacheServer

__all__ = ["TinyCacheServer"]
