"""Debug and statistics logs written by the nodes."""

from __future__ import annotations

from os import PathLike
from pathlib import Path
from typing import IO

from .member import Address
from .params import Params

MAGIC_NUMBER = "CS425"
DBG_LOG = "dbg.log"
STATS_LOG = "stats.log"
STATS_MARKER = "#STATSLOG#"


class DebugLog:
    """Writes node-tagged records to a debug log and a statistics log.

    Both files are created on the first record and flushed after every write.
    """

    def __init__(
        self,
        params: Params,
        directory: str | PathLike[str] = ".",
        dbg_name: str = DBG_LOG,
        stats_name: str = STATS_LOG,
    ) -> None:
        self._params = params
        self.dbg_path = Path(directory) / dbg_name
        self.stats_path = Path(directory) / stats_name
        self._dbg: IO[str] | None = None
        self._stats: IO[str] | None = None
        self._magic_written = False
        self._closed = False

    def _ensure_open(self) -> tuple[IO[str], IO[str]]:
        if self._closed:
            raise ValueError("log is closed")
        if self._dbg is None or self._stats is None:
            self._dbg = open(self.dbg_path, "w", encoding="utf-8")
            self._stats = open(self.stats_path, "w", encoding="utf-8")
        return self._dbg, self._stats

    def log(self, address: Address, message: str) -> None:
        """Write one record tagged with the node's address and the current time."""
        dbg, stats = self._ensure_open()
        if not self._magic_written:
            dbg.write(f"{sum(map(ord, MAGIC_NUMBER)):x}\n")
            self._magic_written = True
        target = stats if message.startswith(STATS_MARKER) else dbg
        target.write(f"\n {address.dotted} [{self._params.current_time}] {message}")
        dbg.flush()
        stats.flush()

    def log_node_add(self, this_node: Address, added: Address) -> None:
        """Record that ``this_node`` added ``added`` to its membership list."""
        self.log(this_node, f"Node {added.dotted} joined at time {self._params.current_time}")

    def log_node_remove(self, this_node: Address, removed: Address) -> None:
        """Record that ``this_node`` removed ``removed`` from its membership list."""
        self.log(this_node, f"Node {removed.dotted} removed at time {self._params.current_time}")

    def close(self) -> None:
        """Close both files; further records raise ValueError."""
        for handle in (self._dbg, self._stats):
            if handle is not None:
                handle.close()
        self._dbg = self._stats = None
        self._closed = True

    def __enter__(self) -> DebugLog:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()