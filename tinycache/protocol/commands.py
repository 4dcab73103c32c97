"""
Protocol Command and Response Definitions

This module defines the data structures shared by the dispatcher and the
connection state machine, and the wire encoding of responses.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import List, Optional

CRLF = b"\r\n"
VERSION_STRING = "VERSION 0.1 TinyCache"


class CommandType(Enum):
    """Enumeration of supported command types."""
    VERSION = auto()
    GET = auto()
    GETS = auto()
    SET = auto()
    ADD = auto()
    REPLACE = auto()
    UNKNOWN = auto()

    @property
    def is_storage(self) -> bool:
        return self in (CommandType.SET, CommandType.ADD, CommandType.REPLACE)


class ResponseStatus(Enum):
    """Enumeration of response status lines."""
    VERSION = "VERSION"
    VALUES = "END"
    STORED = "STORED"
    NOT_STORED = "NOT STORED"
    NOT_FOUND = "NOT FOUND"
    ERROR = "ERROR"
    CLIENT_ERROR = "CLIENT_ERROR"


@dataclass
class StorageRequest:
    """
    A storage command whose payload has not fully arrived yet.

    Attributes:
        operation: SET, ADD or REPLACE
        key: The key to store under
        flags: Client flags from the header (kept, never interpreted)
        ttl: Lifetime in seconds
        length: Declared payload length in bytes, excluding the CRLF
        buffer: Payload bytes received so far
    """
    operation: CommandType
    key: str
    flags: int
    ttl: int
    length: int
    buffer: bytearray = field(default_factory=bytearray)

    @property
    def expected_size(self) -> int:
        """Bytes still owed by the client: the value plus its CRLF."""
        return self.length + len(CRLF)

    @property
    def complete(self) -> bool:
        return len(self.buffer) >= self.expected_size


@dataclass
class ValueBlock:
    """One found key in a retrieval response."""
    key: str
    value: bytes

    def encode(self) -> bytes:
        header = f"VALUE {self.key} 0 {len(self.value)}".encode()
        return header + CRLF + self.value


@dataclass
class Response:
    """
    Represents a protocol response.

    Attributes:
        status: The status line
        message: Extra text after the status (error reason)
        values: Found entries for GET/GETS responses
    """
    status: ResponseStatus
    message: str = ""
    values: List[ValueBlock] = field(default_factory=list)

    @classmethod
    def version(cls) -> "Response":
        return cls(status=ResponseStatus.VERSION)

    @classmethod
    def stored(cls) -> "Response":
        return cls(status=ResponseStatus.STORED)

    @classmethod
    def not_stored(cls) -> "Response":
        return cls(status=ResponseStatus.NOT_STORED)

    @classmethod
    def not_found(cls) -> "Response":
        return cls(status=ResponseStatus.NOT_FOUND)

    @classmethod
    def error(cls) -> "Response":
        """Create the generic response for an unrecognized command."""
        return cls(status=ResponseStatus.ERROR)

    @classmethod
    def client_error(cls, message: str) -> "Response":
        """Create a response for a malformed request."""
        return cls(status=ResponseStatus.CLIENT_ERROR, message=message)

    @classmethod
    def values_response(cls, values: List[ValueBlock]) -> "Response":
        return cls(status=ResponseStatus.VALUES, values=values)

    def encode(self) -> bytes:
        """
        Format the response for the wire, CRLF terminated.

        Examples:
            >>> Response.stored().encode()
            b'STORED\\r\\n'
            >>> Response.values_response([ValueBlock("k", b"hi")]).encode()
            b'VALUE k 0 2\\r\\nhi\\r\\nEND\\r\\n'
        """
        if self.status is ResponseStatus.VERSION:
            line = VERSION_STRING.encode()
        elif self.status is ResponseStatus.VALUES:
            # Only found keys get a block; with none found the reply is just END
            parts = [block.encode() for block in self.values]
            parts.append(self.status.value.encode())
            line = CRLF.join(parts)
        elif self.message:
            line = f"{self.status.value} {self.message}".encode()
        else:
            line = self.status.value.encode()
        return line + CRLF


def decode_line(line: bytes) -> Optional[str]:
    """Decode a command line, returning None if it is not valid UTF-8."""
    try:
        return line.decode("utf-8")
    except UnicodeDecodeError:
        return None
