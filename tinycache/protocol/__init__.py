"""Protocol module for TinyCache."""

from .commands import CommandType, Response, ResponseStatus, StorageRequest, ValueBlock
from .connection import AwaitingCommand, AwaitingPayload, ConnectionStateMachine
from .dispatcher import CommandDispatcher

__all__ = [
    "AwaitingCommand",
    "AwaitingPayload",
    "CommandDispatcher",
    "CommandType",
    "ConnectionStateMachine",
    "Response",
    "ResponseStatus",
    "StorageRequest",
    "ValueBlock",
]
