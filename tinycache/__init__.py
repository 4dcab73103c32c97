"""
TinyCache: In-Memory Key-Value Cache

A small memcached-like cache server built with Python asyncio. Entries
carry a TTL that is refreshed on every read and counted down by a
periodic sweep.
"""

__version__ = "0.1"
