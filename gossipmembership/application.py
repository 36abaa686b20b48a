"""Drives a group of simulated nodes through a timed membership run."""

from __future__ import annotations

import random
import sys
from collections.abc import Sequence
from os import PathLike
from pathlib import Path
from typing import TextIO

from .debuglog import DebugLog
from .emulnet import EmulNet
from .member import Member
from .node import MP1Node
from .params import Params, load_params

TOTAL_RUNNING_TIME = 700
USAGE = "Configuration (i.e., *.conf) file File Required"


class Application:
    """Creates the nodes, advances the clock, and injects failures."""

    def __init__(
        self,
        params: Params,
        directory: str | PathLike[str] = ".",
        rng: random.Random | None = None,
        out: TextIO | None = None,
        total_time: int = TOTAL_RUNNING_TIME,
    ) -> None:
        self.params = params
        self.directory = Path(directory)
        self._rng = rng if rng is not None else random.Random()
        self._out = out
        self.total_time = total_time
        self.node_count = 0
        self.log = DebugLog(params, self.directory)
        self.network = EmulNet(params, rng=self._rng)
        self.nodes: list[MP1Node] = []
        for _ in range(params.en_gpsz):
            node = MP1Node(
                Member(), params, self.network, self.log, self.network.init_address(), out=out
            )
            self.log.log(node.member.addr, "APP")
            self.nodes.append(node)

    def run(self) -> None:
        """Run every tick, then write message counts and shut the nodes down."""
        for tick in range(self.total_time):
            self.params.globaltime = tick
            self.mp1_run()
            self.fail()
        self.params.globaltime = self.total_time

        self.network.cleanup(self.directory / "msgcount.log")
        for node in self.nodes:
            node.finish_up_this_node()
        self.log.close()

    def mp1_run(self) -> None:
        """One tick: deliver messages, introduce due nodes, and run the rest."""
        now = self.params.current_time
        step = self.params.step_rate

        for index, node in enumerate(self.nodes):
            if now > int(step * index) and not node.member.failed:
                node.recv_loop()

        for index in reversed(range(len(self.nodes))):
            node = self.nodes[index]
            start = int(step * index)
            if now == start:
                node.node_start()
                print(
                    f"{index}-th introduced node is assigned with the address: {node.member.addr}",
                    file=self._out,
                )
                self.node_count += index
            elif now > start and not node.member.failed:
                node.node_loop()

    def fail(self) -> None:
        """Toggle message dropping and fail nodes at the scheduled times."""
        params = self.params
        now = params.current_time
        size = params.en_gpsz

        if params.drop_msg and now == 50:
            params.dropmsg = True

        if params.single_failure and now == 100:
            self.nodes[self._rng.randrange(size)].member.failed = True
        elif now == 100:
            first = self._rng.randrange(size) // 2
            for node in self.nodes[first:first + size // 2]:
                node.member.failed = True

        if params.drop_msg and now == 300:
            params.dropmsg = False


def main(argv: Sequence[str] | None = None) -> int:
    """Run a simulation described by the configuration file named in ``argv``."""
    args = list(sys.argv[1:] if argv is None else argv)
    if len(args) != 1:
        print(USAGE)
        return 1
    Application(load_params(args[0])).run()
    return 0


if __name__ == "__main__":
    sys.exit(main())