# gossipmembership

A gossip-style membership protocol with heartbeat-based failure detection,
run inside an in-memory emulated network on a simulated clock.

Every node joins the group through an introducer (the node with address
`1:0`), keeps a membership list of peers with their heartbeat counters,
gossips that list to every peer it knows on each tick, and removes peers it
has not heard a newer heartbeat from for 20 ticks. The driver introduces the
nodes one by one, fails some of them at tick 100 and, if asked to, drops a
share of the messages on the network between ticks 50 and 300.

## Installation

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Running a simulation

The simulation is driven by a small configuration file whose four lines come
in this order:

```
MAX_NNB: 10
SINGLE_FAILURE: 1
DROP_MSG: 0
MSG_DROP_PROB: 0.1
```

- `MAX_NNB`: number of nodes in the group.
- `SINGLE_FAILURE`: `1` fails a single random node at tick 100; `0` fails
  half of the group at tick 100.
- `DROP_MSG`: `1` turns on message loss from tick 50 until tick 300.
- `MSG_DROP_PROB`: probability that a message is dropped while loss is on.

Run it with:

```
gossipmembership singlefailure.conf
```

Without exactly one argument the command prints a usage line and exits with
status 1. A run lasts 700 ticks. While it runs, the program prints each node's
address as it is introduced and every join reply and ping it sends and
receives. It writes to the working directory:

- `dbg.log`: a header line, then one record per node at start-up and one for
  every member a node adds to or removes from its list, each tagged with the
  node's address and the tick.
- `stats.log`: records whose text starts with `#STATSLOG#`; the nodes
  themselves write none, so it is normally left empty.
- `msgcount.log`: messages sent and received by each node, tick by tick, with
  totals.

## Using it from Python

The configuration can be read from a file or from text; a malformed file
raises `ValueError`:

```python
from gossipmembership.params import load_params, parse_params

params = load_params("singlefailure.conf")
params = parse_params("MAX_NNB: 10\nSINGLE_FAILURE: 1\nDROP_MSG: 0\nMSG_DROP_PROB: 0.1\n")
```

A run can be driven from code, with a chosen output directory, a seeded
random generator, a stream for the printed trace and a shorter run:

```python
import io
import random

from gossipmembership.application import Application

app = Application(params, directory="out", rng=random.Random(1), out=io.StringIO(), total_time=200)
app.run()
```

Gossip messages have a compact binary form:

```python
from gossipmembership.member import Address, MemberListEntry
from gossipmembership.node import GossipMessage, MsgType, decode_message, encode_message

message = GossipMessage(MsgType.PING, Address(2, 0), [MemberListEntry(3, 0, 5, 10)])
payload = encode_message(message)
assert decode_message(payload) == message
```

The main pieces are:

- `gossipmembership.member`: `Address` (a node id and a port, with a six-byte
  wire form), `parse_address` for `id:port` strings, `MemberListEntry`, and
  `Member`, the state and message queue of one node.
- `gossipmembership.params`: `Params`, `parse_params`, `load_params`.
- `gossipmembership.debuglog`: `DebugLog`, the debug and statistics log.
- `gossipmembership.emulnet`: `EmulNet`, the emulated network, and `Envelope`,
  a message in flight.
- `gossipmembership.node`: `MP1Node`, the protocol run by each node, with
  `MsgType`, `GossipMessage`, `encode_message`, `decode_message` and
  `join_address`.
- `gossipmembership.application`: `Application`, the driver, and `main`.

## What it does not do

Everything runs inside one process on a simulated clock. The package opens no
sockets and cannot run a membership group across real machines; the network
is the in-memory `EmulNet` only.