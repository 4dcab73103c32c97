"""
Command Dispatcher Module

Maps the first token of a command line to its handler. The set of
commands is closed; anything else is answered with ERROR.

Commands:
    VERSION                               -> VERSION 0.1 TinyCache
    GET <key>                             -> VALUE ... END | NOT FOUND
    GETS <key> [<key> ...]                -> VALUE ... END (absent keys omitted)
    SET <key> <flags> <ttl> <length>      -> (payload follows) STORED
    ADD <key> <flags> <ttl> <length>      -> (payload follows) STORED | NOT STORED
    REPLACE <key> <flags> <ttl> <length>  -> (payload follows) STORED | NOT STORED
"""

import logging
from typing import Callable, Dict, List, Union

from ..cache.store import CacheStore, StoreResult
from .commands import CommandType, Response, StorageRequest, ValueBlock

logger = logging.getLogger(__name__)

# <cmd> <key> <flags> <ttl> <length>
STORAGE_HEADER_TOKENS = 5

COMMAND_NAMES: Dict[str, CommandType] = {
    "version": CommandType.VERSION,
    "get": CommandType.GET,
    "gets": CommandType.GETS,
    "set": CommandType.SET,
    "add": CommandType.ADD,
    "replace": CommandType.REPLACE,
}

DispatchResult = Union[Response, StorageRequest]


class CommandDispatcher:
    """
    Resolves command lines to handlers and runs them against a store.

    Retrieval commands produce a Response straight away. Storage commands
    only validate their header and return a StorageRequest; the caller
    collects the payload and hands it back through commit().

    Attributes:
        store: The CacheStore shared by all connections
    """

    def __init__(self, store: CacheStore):
        self.store = store
        self._handlers: Dict[CommandType, Callable[[List[str]], DispatchResult]] = {
            CommandType.VERSION: self._version,
            CommandType.GET: self._get,
            CommandType.GETS: self._gets,
            CommandType.SET: self._storage,
            CommandType.ADD: self._storage,
            CommandType.REPLACE: self._storage,
        }
        self._operations: Dict[CommandType, Callable[[str, bytes, int], StoreResult]] = {
            CommandType.SET: store.set,
            CommandType.ADD: store.add,
            CommandType.REPLACE: store.replace,
        }

    @staticmethod
    def resolve(token: str) -> CommandType:
        """Map a command token to its type, case-insensitively."""
        return COMMAND_NAMES.get(token.lower(), CommandType.UNKNOWN)

    def dispatch(self, tokens: List[str]) -> DispatchResult:
        """
        Run the command named by tokens[0].

        Args:
            tokens: The whitespace-split command line

        Returns:
            A Response to send, or a StorageRequest awaiting its payload
        """
        if not tokens:
            return Response.error()

        command_type = self.resolve(tokens[0])
        handler = self._handlers.get(command_type)
        if handler is None:
            return Response.error()
        return handler(tokens)

    def commit(self, request: StorageRequest, value: bytes) -> Response:
        """Apply a completed storage request to the store."""
        result = self._operations[request.operation](request.key, value, request.ttl)
        logger.debug(f"{request.operation.name} {request.key} ({len(value)} bytes): {result.value}")
        if result is StoreResult.STORED:
            return Response.stored()
        return Response.not_stored()

    def _version(self, tokens: List[str]) -> Response:
        return Response.version()

    def _get(self, tokens: List[str]) -> Response:
        if len(tokens) < 2:
            return Response.error()

        key = tokens[1]
        value = self.store.get(key)
        if value is None:
            return Response.not_found()
        return Response.values_response([ValueBlock(key, value)])

    def _gets(self, tokens: List[str]) -> Response:
        keys = tokens[1:]
        if not keys:
            return Response.error()

        found = self.store.get_multi(keys)
        logger.debug(f"GETS found {len(found)} of {len(keys)} keys")
        return Response.values_response([ValueBlock(key, value) for key, value in found])

    def _storage(self, tokens: List[str]) -> DispatchResult:
        if len(tokens) != STORAGE_HEADER_TOKENS:
            return Response.client_error("bad command line format")

        _, key, flags, ttl, length = tokens
        try:
            flags_value = int(flags)
            ttl_value = int(ttl)
            length_value = int(length)
        except ValueError:
            return Response.client_error("bad command line format")

        if ttl_value < 0 or length_value < 0:
            return Response.client_error("bad command line format")

        return StorageRequest(
            operation=self.resolve(tokens[0]),
            key=key,
            flags=flags_value,
            ttl=ttl_value,
            length=length_value,
        )
