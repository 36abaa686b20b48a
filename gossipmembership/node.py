"""Gossip-style membership protocol run by each simulated node."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from enum import IntEnum
from typing import TextIO

from .debuglog import DebugLog
from .emulnet import EmulNet
from .member import ADDRESS_SIZE, Address, Member, MemberListEntry
from .params import Params

TREMOVE = 20
TFAIL = 5

_INT = struct.Struct("<i")
_ENTRY = struct.Struct("<ihqq")
_HEADER_SIZE = _INT.size + ADDRESS_SIZE + _INT.size


class MsgType(IntEnum):
    """Kinds of membership messages."""

    JOINREQ = 0
    JOINREP = 1
    PING = 2


@dataclass
class GossipMessage:
    """A membership message: its kind, its sender and the sender's member list."""

    msg_type: MsgType
    addr: Address
    members: list[MemberListEntry] = field(default_factory=list)


def encode_message(message: GossipMessage) -> bytes:
    """Serialise a message to its wire form."""
    parts = [
        _INT.pack(int(message.msg_type)),
        message.addr.to_bytes(),
        _INT.pack(len(message.members)),
    ]
    parts.extend(
        _ENTRY.pack(entry.id, entry.port, entry.heartbeat, entry.timestamp)
        for entry in message.members
    )
    return b"".join(parts)


def decode_message(data: bytes) -> GossipMessage:
    """Parse a message from its wire form; raise ValueError if it is malformed."""
    data = bytes(data)
    if len(data) < _HEADER_SIZE:
        raise ValueError(f"message too short: {len(data)} bytes")
    (raw_type,) = _INT.unpack_from(data, 0)
    try:
        msg_type = MsgType(raw_type)
    except ValueError:
        raise ValueError(f"unknown message type {raw_type}") from None
    addr = Address.from_bytes(data[_INT.size:_INT.size + ADDRESS_SIZE])
    (count,) = _INT.unpack_from(data, _INT.size + ADDRESS_SIZE)
    if count < 0 or len(data) != _HEADER_SIZE + count * _ENTRY.size:
        raise ValueError(f"message length does not match {count} members")
    members = [MemberListEntry(*fields) for fields in _ENTRY.iter_unpack(data[_HEADER_SIZE:])]
    return GossipMessage(msg_type, addr, members)


def join_address() -> Address:
    """The address of the introducer every node joins through."""
    return Address(1, 0)


class MP1Node:
    """Runs the membership protocol for one member over the emulated network."""

    def __init__(
        self,
        member: Member,
        params: Params,
        network: EmulNet,
        log: DebugLog,
        address: Address,
        out: TextIO | None = None,
    ) -> None:
        self.member = member
        self._params = params
        self._network = network
        self._log = log
        self._out = out
        self.member.addr = address

    @property
    def _now(self) -> int:
        return self._params.current_time

    def _say(self, text: str) -> None:
        print(text, file=self._out)

    def recv_loop(self) -> int:
        """Move messages waiting on the network into this node's queue."""
        if self.member.failed:
            return 0
        return self._network.receive(self.member.addr, self.member.enqueue)

    def node_start(self) -> None:
        """Bootstrap the node and ask to join the group."""
        join_addr = join_address()
        self.init_this_node()
        self.introduce_self_to_group(join_addr)

    def init_this_node(self) -> None:
        """Reset this node's state so that it is up but not yet in a group."""
        member = self.member
        member.failed = False
        member.inited = True
        member.in_group = False
        member.nnb = 0
        member.heartbeat = 0
        member.ping_counter = TFAIL
        member.timeout_counter = -1
        member.member_list.clear()

    def introduce_self_to_group(self, join_addr: Address) -> bool:
        """Start the group when this is the introducer, else send it a join request."""
        if self.member.addr == join_addr:
            self.member.in_group = True
        else:
            request = GossipMessage(MsgType.JOINREQ, self.member.addr)
            self._network.send(self.member.addr, join_addr, encode_message(request))
        return True

    def finish_up_this_node(self) -> None:
        """Wind the node down, discarding messages it has not handled."""
        self.member.queue.clear()
        self.member.inited = False

    def node_loop(self) -> None:
        """Handle queued messages and, once in the group, do the periodic duties."""
        if self.member.failed:
            return
        self.check_messages()
        if not self.member.in_group:
            return
        self.node_loop_ops()

    def check_messages(self) -> None:
        """Handle every message waiting in the queue, oldest first."""
        queue = self.member.queue
        while queue:
            self.recv_callback(queue.popleft())

    def recv_callback(self, data: bytes) -> None:
        """Dispatch one received message on its type."""
        message = decode_message(data)
        me = self.member.addr
        if message.msg_type is MsgType.JOINREQ:
            self._add_from_message(message)
            reply = self._create_message(MsgType.JOINREP)
            self._network.send(me, message.addr, encode_message(reply))
            self._say(f"send [{self._now}] JOINREP [{me}] to {message.addr}")
        elif message.msg_type is MsgType.JOINREP:
            self.member.in_group = True
            self._say(f"receive [{self._now}]  JOINREP [{me}] from {message.addr}")
            self._add_from_message(message)
        elif message.msg_type is MsgType.PING:
            self._say(f"receive [{self._now}] PING [{me}] from {message.addr}")
            self._handle_ping(message)

    def _handle_ping(self, message: GossipMessage) -> None:
        sender = self._find(message.addr)
        if sender is not None:
            sender.heartbeat += 1
            sender.timestamp = self._now
        else:
            self._add_from_message(message)

        for gossip in message.members:
            known = self._find(gossip.address())
            if known is None:
                self._add_entry(gossip)
            elif gossip.heartbeat > known.heartbeat:
                known.heartbeat = gossip.heartbeat
                known.timestamp = self._now

    def _find(self, address: Address) -> MemberListEntry | None:
        return next(
            (entry for entry in self.member.member_list
             if entry.id == address.id and entry.port == address.port),
            None,
        )

    def _add_entry(self, entry: MemberListEntry) -> None:
        address = entry.address()
        if self._find(address) is not None or address == self.member.addr:
            return
        if self._now - entry.timestamp < TREMOVE:
            self._log.log_node_add(self.member.addr, address)
            self.member.member_list.append(
                MemberListEntry(entry.id, entry.port, entry.heartbeat, self._now)
            )

    def _add_from_message(self, message: GossipMessage) -> None:
        if self._find(message.addr) is not None:
            return
        self._log.log_node_add(self.member.addr, message.addr)
        self.member.member_list.append(
            MemberListEntry(message.addr.id, message.addr.port, 1, self._now)
        )

    def _create_message(self, msg_type: MsgType) -> GossipMessage:
        members = [
            MemberListEntry(e.id, e.port, e.heartbeat, e.timestamp)
            for e in self.member.member_list
        ]
        return GossipMessage(msg_type, self.member.addr, members)

    def node_loop_ops(self) -> None:
        """Drop members not heard from within TREMOVE and gossip the list to the rest."""
        member = self.member
        member.heartbeat += 1

        now = self._now
        stale = [entry for entry in member.member_list if now - entry.timestamp >= TREMOVE]
        for entry in stale:
            self._log.log_node_remove(member.addr, entry.address())
        member.member_list[:] = [
            entry for entry in member.member_list if now - entry.timestamp < TREMOVE
        ]

        ping = encode_message(self._create_message(MsgType.PING))
        for entry in member.member_list:
            target = entry.address()
            self._say(f"send [{now}] PING [{member.addr}] to {target}")
            self._network.send(member.addr, target, ping)