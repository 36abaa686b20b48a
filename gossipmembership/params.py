"""Parameters of a simulation run, read from a ``.conf`` file."""

from __future__ import annotations

import re
from dataclasses import dataclass
from os import PathLike

_CONFIG_PATTERN = re.compile(
    r"MAX_NNB:\s*(?P<max_nnb>[+-]?\d+)"
    r"\s*SINGLE_FAILURE:\s*(?P<single_failure>[+-]?\d+)"
    r"\s*DROP_MSG:\s*(?P<drop_msg>[+-]?\d+)"
    r"\s*MSG_DROP_PROB:\s*(?P<msg_drop_prob>[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)"
)


@dataclass
class Params:
    """Settings for one test case plus the global simulated clock."""

    max_nnb: int = 0
    single_failure: bool = False
    drop_msg: bool = False
    msg_drop_prob: float = 0.0
    en_gpsz: int | None = None
    step_rate: float = 0.25
    max_msg_size: int = 4000
    portnum: int = 8001
    globaltime: int = 0
    dropmsg: bool = False

    def __post_init__(self) -> None:
        if self.en_gpsz is None:
            self.en_gpsz = self.max_nnb

    @property
    def current_time(self) -> int:
        """Time since the start of the run, in simulation ticks."""
        return self.globaltime

    @property
    def all_nodes_joined(self) -> int:
        """Sum of the indices of every node in the group."""
        return sum(range(self.en_gpsz))


def parse_params(text: str) -> Params:
    """Parse the four ``KEY: value`` lines of a configuration file."""
    match = _CONFIG_PATTERN.match(text)
    if match is None:
        raise ValueError("configuration must give MAX_NNB, SINGLE_FAILURE, DROP_MSG and MSG_DROP_PROB")
    return Params(
        max_nnb=int(match["max_nnb"]),
        single_failure=bool(int(match["single_failure"])),
        drop_msg=bool(int(match["drop_msg"])),
        msg_drop_prob=float(match["msg_drop_prob"]),
    )


def load_params(path: str | PathLike[str]) -> Params:
    """Read and parse a configuration file."""
    with open(path, encoding="ascii") as handle:
        return parse_params(handle.read())