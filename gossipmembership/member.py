"""Node addresses, membership-list entries and per-node state."""

from __future__ import annotations

import struct
from collections import deque
from dataclasses import dataclass, field

_ADDRESS_STRUCT = struct.Struct("<ih")
ADDRESS_SIZE = _ADDRESS_STRUCT.size

_INT_MIN, _INT_MAX = -(2**31), 2**31 - 1
_SHORT_MIN, _SHORT_MAX = -(2**15), 2**15 - 1


def _wrap_short(value: int) -> int:
    return ((value + 0x8000) & 0xFFFF) - 0x8000


@dataclass(frozen=True, order=True)
class Address:
    """A node address: a 32-bit node id and a 16-bit port, six bytes on the wire."""

    id: int = 0
    port: int = 0

    def __post_init__(self) -> None:
        if not _INT_MIN <= self.id <= _INT_MAX:
            raise ValueError(f"node id out of range: {self.id}")
        if not _SHORT_MIN <= self.port <= _SHORT_MAX:
            raise ValueError(f"port out of range: {self.port}")

    @classmethod
    def from_bytes(cls, data: bytes) -> Address:
        """Build an address from its six-byte wire form."""
        if len(data) != ADDRESS_SIZE:
            raise ValueError(f"an address is {ADDRESS_SIZE} bytes, got {len(data)}")
        node_id, port = _ADDRESS_STRUCT.unpack(data)
        return cls(node_id, port)

    def to_bytes(self) -> bytes:
        """Return the six-byte wire form of the address."""
        return _ADDRESS_STRUCT.pack(self.id, self.port)

    def is_null(self) -> bool:
        """True when every byte of the address is zero."""
        return self.to_bytes() == bytes(ADDRESS_SIZE)

    @property
    def dotted(self) -> str:
        """The address as four signed id bytes and the port, as the logs show it."""
        octets = struct.unpack("<4b", self.to_bytes()[:4])
        return ".".join(str(octet) for octet in octets) + f":{self.port}"

    def __str__(self) -> str:
        return f"{self.id}:{self.port}"


def parse_address(text: str) -> Address:
    """Parse an ``id:port`` string; the port is truncated to 16 bits."""
    id_text, separator, port_text = text.partition(":")
    if not separator:
        raise ValueError(f"address must look like 'id:port': {text!r}")
    node_id = int(id_text)
    if not _INT_MIN <= node_id <= _INT_MAX:
        raise ValueError(f"node id out of range: {node_id}")
    return Address(node_id, _wrap_short(int(port_text)))


@dataclass
class MemberListEntry:
    """One row of a membership list."""

    id: int = 0
    port: int = 0
    heartbeat: int = 0
    timestamp: int = 0

    def address(self) -> Address:
        """The address of the member this entry describes."""
        return Address(self.id, self.port)


@dataclass
class Member:
    """The state one node keeps about itself and its group."""

    addr: Address = field(default_factory=Address)
    inited: bool = False
    in_group: bool = False
    failed: bool = False
    nnb: int = 0
    heartbeat: int = 0
    ping_counter: int = 0
    timeout_counter: int = 0
    member_list: list[MemberListEntry] = field(default_factory=list)
    queue: deque[bytes] = field(default_factory=deque)

    def enqueue(self, data: bytes) -> bool:
        """Append a received message to this node's queue."""
        self.queue.append(bytes(data))
        return True