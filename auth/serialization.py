"""
auth/serialization.py -- Binary wire format for Principal.

Layout (big-endian, versionless -- any change is a breaking wire change):

    +--------------------+---------------------------+
    | uint32 length (BE) | username, UTF-8, `length` |
    +--------------------+---------------------------+

Envelope fields shared by all identity types are written by the caller
before this block; write_principal() appends and read_principal() starts at
an offset and returns the position after the block, so principals embed in a
larger buffer.

Truncated or undecodable input raises MalformedPrincipal; nothing is ever
read past the end of the buffer.
"""

from __future__ import annotations

import struct

from auth.errors import MalformedPrincipal
from auth.models import Principal

_LENGTH = struct.Struct(">I")


def write_principal(buf: bytearray, principal: Principal) -> None:
    data = principal.username.encode("utf-8")
    buf.extend(_LENGTH.pack(len(data)))
    buf.extend(data)


def read_principal(buf: bytes | bytearray | memoryview, pos: int = 0) -> tuple[Principal, int]:
    """Decode one principal block starting at `pos`.

    Returns the Principal and the offset just past the block.
    """
    if pos < 0 or pos + _LENGTH.size > len(buf):
        raise MalformedPrincipal(f"buffer too short for length prefix at offset {pos}")
    (length,) = _LENGTH.unpack_from(buf, pos)
    pos += _LENGTH.size
    end = pos + length
    if end > len(buf):
        raise MalformedPrincipal(f"username needs {length} bytes, only {len(buf) - pos} available")
    try:
        username = bytes(buf[pos:end]).decode("utf-8")
    except UnicodeDecodeError as exc:
        raise MalformedPrincipal("username is not valid UTF-8") from exc
    return Principal(username), end


def principal_to_bytes(principal: Principal) -> bytes:
    buf = bytearray()
    write_principal(buf, principal)
    return bytes(buf)


def principal_from_bytes(data: bytes | bytearray | memoryview) -> Principal:
    """Decode a buffer holding exactly one principal block."""
    principal, pos = read_principal(data, 0)
    if pos != len(data):
        raise MalformedPrincipal(f"{len(data) - pos} trailing bytes after principal")
    return principal
