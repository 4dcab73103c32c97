"""
Connection State Machine Module

Turns the raw byte stream of one client connection into dispatcher calls
and encoded responses.

The network layer gives no framing guarantees, so input is buffered here.
A connection is always in one of two states:

    AwaitingCommand  - collecting a command line up to its line terminator
    AwaitingPayload  - collecting exactly <length> + 2 payload bytes for a
                       storage command whose header has been parsed

A client that sends a storage header and never completes the payload keeps
the connection in AwaitingPayload indefinitely.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Union

from .commands import CRLF, Response, StorageRequest, decode_line
from .dispatcher import CommandDispatcher

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AwaitingCommand:
    """Waiting for a command line."""


@dataclass(frozen=True)
class AwaitingPayload:
    """Waiting for the payload of a storage command."""
    request: StorageRequest


ConnectionState = Union[AwaitingCommand, AwaitingPayload]


class ConnectionStateMachine:
    """
    Per-connection protocol parser.

    Feed it every chunk read from the socket; it returns the responses
    completed by that chunk, in the order the commands arrived.

    Usage:
        machine = ConnectionStateMachine(dispatcher)
        for response in machine.feed(data):
            writer.write(response)
    """

    def __init__(self, dispatcher: CommandDispatcher):
        self.dispatcher = dispatcher
        self._state: ConnectionState = AwaitingCommand()
        self._inbound = bytearray()

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def pending(self) -> Optional[StorageRequest]:
        """The storage request waiting for its payload, if any."""
        if isinstance(self._state, AwaitingPayload):
            return self._state.request
        return None

    def feed(self, data: bytes) -> List[bytes]:
        """
        Process a chunk of input.

        Args:
            data: Bytes as delivered by the network, any size

        Returns:
            Encoded responses (each CRLF terminated) for every exchange
            this chunk completed; empty if nothing completed yet
        """
        self._inbound.extend(data)
        responses = []

        while True:
            if isinstance(self._state, AwaitingPayload):
                response = self._receive_payload(self._state.request)
                if response is None:
                    break
            else:
                line = self._next_line()
                if line is None:
                    break
                response = self._handle_line(line)

            if response is not None:
                responses.append(response.encode())

        return responses

    def _next_line(self) -> Optional[bytes]:
        end = self._inbound.find(b"\n")
        if end == -1:
            return None

        line = bytes(self._inbound[:end])
        del self._inbound[:end + 1]
        if line.endswith(b"\r"):
            line = line[:-1]
        return line

    def _handle_line(self, line: bytes) -> Optional[Response]:
        text = decode_line(line)
        if text is None:
            return Response.client_error("invalid encoding")

        result = self.dispatcher.dispatch(text.split())
        if isinstance(result, StorageRequest):
            # Header accepted; the response comes once the payload is in
            self._state = AwaitingPayload(result)
            return None
        return result

    def _receive_payload(self, request: StorageRequest) -> Optional[Response]:
        """Move buffered input into the pending request; commit when complete."""
        missing = request.expected_size - len(request.buffer)
        request.buffer.extend(self._inbound[:missing])
        del self._inbound[:missing]

        if not request.complete:
            return None

        self._state = AwaitingCommand()
        payload = bytes(request.buffer)
        value, terminator = payload[:request.length], payload[request.length:]
        if terminator != CRLF:
            logger.debug(f"Bad payload terminator for {request.key}: {terminator!r}")
            return Response.client_error("bad data chunk")

        return self.dispatcher.commit(request, value)
