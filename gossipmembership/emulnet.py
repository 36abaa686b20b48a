"""An in-memory network that carries messages between simulated nodes."""

from __future__ import annotations

import random
from collections import Counter
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from os import PathLike

from .member import ADDRESS_SIZE, Address
from .params import Params

MAX_NODES = 1000
MAX_TIME = 3600
ENBUFFSIZE = 30000
ENVELOPE_OVERHEAD = 4 + 2 * ADDRESS_SIZE


@dataclass(frozen=True)
class Envelope:
    """A message in flight."""

    source: Address
    destination: Address
    data: bytes


class EmulNet:
    """Buffers sent messages and hands them to their destinations on receive."""

    def __init__(
        self,
        params: Params,
        rng: random.Random | None = None,
        capacity: int = ENBUFFSIZE,
    ) -> None:
        self._params = params
        self._rng = rng if rng is not None else random.Random()
        self._capacity = capacity
        self._buffer: list[Envelope] = []
        self._next_id = 1
        self.sent: Counter[tuple[int, int]] = Counter()
        self.received: Counter[tuple[int, int]] = Counter()

    @property
    def pending(self) -> tuple[Envelope, ...]:
        """Messages sent but not yet received."""
        return tuple(self._buffer)

    def init_address(self) -> Address:
        """Hand out the next node address."""
        address = Address(self._next_id, 0)
        self._next_id += 1
        return address

    @staticmethod
    def _check_counters(node_id: int, time: int) -> None:
        if node_id > MAX_NODES:
            raise ValueError(f"node id {node_id} exceeds {MAX_NODES}")
        if time >= MAX_TIME:
            raise ValueError(f"time {time} is not below {MAX_TIME}")

    def send(self, source: Address, destination: Address, data: bytes) -> int:
        """Queue a message; return its size, or 0 when it is dropped."""
        roll = self._rng.randrange(100)
        params = self._params
        if (
            len(self._buffer) >= self._capacity
            or len(data) + ENVELOPE_OVERHEAD >= params.max_msg_size
            or (params.dropmsg and roll < int(params.msg_drop_prob * 100))
        ):
            return 0
        time = params.current_time
        self._check_counters(source.id, time)
        self._buffer.append(Envelope(source, destination, bytes(data)))
        self.sent[source.id, time] += 1
        return len(data)

    def receive(self, address: Address, enqueue: Callable[[bytes], object]) -> int:
        """Deliver every pending message for ``address``; return how many."""
        time = self._params.current_time
        delivered = 0
        # Walk from the back, moving the last message into each freed slot.
        for index in reversed(range(len(self._buffer))):
            envelope = self._buffer[index]
            if envelope.destination != address:
                continue
            self._check_counters(address.id, time)
            self._buffer[index] = self._buffer[-1]
            self._buffer.pop()
            enqueue(envelope.data)
            self.received[address.id, time] += 1
            delivered += 1
        return delivered

    def _report(self) -> Iterator[str]:
        now = self._params.current_time
        for node in range(1, self._params.en_gpsz + 1):
            parts = [f"node {node:3d} "]
            sent_total = recv_total = 0
            for time in range(now):
                sent, received = self.sent[node, time], self.received[node, time]
                sent_total += sent
                recv_total += received
                if node != 67:
                    parts.append(f" ({sent:4d}, {received:4d})")
                    if time % 10 == 9:
                        parts.append("\n         ")
                else:
                    parts.append(f"special {time:4d} {sent:4d} {received:4d}\n")
            parts.append("\n")
            parts.append(f"node {node:3d} sent_total {sent_total:6d}  recv_total {recv_total:6d}\n\n")
            yield "".join(parts)

    def cleanup(self, path: str | PathLike[str] = "msgcount.log") -> None:
        """Drop undelivered messages and write the per-node message counts."""
        self._next_id = 0
        self._buffer.clear()
        with open(path, "w", encoding="ascii") as handle:
            handle.writelines(self._report())