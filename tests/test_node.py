import io
import random

import pytest

from gossipmembership.debuglog import DebugLog
from gossipmembership.emulnet import EmulNet
from gossipmembership.member import Address, Member, MemberListEntry
from gossipmembership.node import (
    TFAIL,
    TREMOVE,
    GossipMessage,
    MP1Node,
    MsgType,
    decode_message,
    encode_message,
    join_address,
)
from gossipmembership.params import Params


def make_group(tmp_path, count=3):
    params = Params(max_nnb=count)
    net = EmulNet(params, rng=random.Random(0))
    log = DebugLog(params, tmp_path)
    out = io.StringIO()
    nodes = [
        MP1Node(Member(), params, net, log, net.init_address(), out=out) for _ in range(count)
    ]
    return params, net, log, nodes, out


def ping_from(address, members):
    return encode_message(GossipMessage(MsgType.PING, address, members))


def test_encode_join_request_wire_bytes():
    data = encode_message(GossipMessage(MsgType.JOINREQ, Address(2, 0)))
    assert data == b"\x00\x00\x00\x00" + b"\x02\x00\x00\x00\x00\x00" + b"\x00\x00\x00\x00"


def test_message_round_trip():
    message = GossipMessage(
        MsgType.PING,
        Address(3, 7),
        [MemberListEntry(1, 0, 5, 12), MemberListEntry(2, -1, 9, 40)],
    )
    assert decode_message(encode_message(message)) == message


@pytest.mark.parametrize(
    "data",
    [
        b"\x00\x00\x00",
        b"\x09\x00\x00\x00" + bytes(6) + bytes(4),
        b"\x02\x00\x00\x00" + bytes(6) + b"\x01\x00\x00\x00",
    ],
)
def test_decode_rejects_malformed(data):
    with pytest.raises(ValueError):
        decode_message(data)


def test_join_address_is_first_node():
    assert join_address() == Address(1, 0)


def test_introducer_starts_group(tmp_path):
    _, net, _, nodes, _ = make_group(tmp_path)
    nodes[0].node_start()
    assert nodes[0].member.in_group
    assert nodes[0].member.inited
    assert net.pending == ()


def test_joiner_sends_join_request(tmp_path):
    _, net, _, nodes, _ = make_group(tmp_path)
    nodes[1].node_start()
    assert not nodes[1].member.in_group
    (envelope,) = net.pending
    assert envelope.destination == join_address()
    message = decode_message(envelope.data)
    assert message.msg_type is MsgType.JOINREQ
    assert message.addr == nodes[1].member.addr
    assert message.members == []


def test_join_handshake(tmp_path):
    params, net, _, nodes, out = make_group(tmp_path)
    params.globaltime = 0
    nodes[0].node_start()
    nodes[1].node_start()

    params.globaltime = 1
    assert nodes[0].recv_loop() == 1
    nodes[0].node_loop()
    assert nodes[0].member.member_list == [MemberListEntry(2, 0, 1, 1)]
    assert {decode_message(e.data).msg_type for e in net.pending} == {MsgType.JOINREP, MsgType.PING}
    assert "send [1] JOINREP [1:0] to 2:0" in out.getvalue()

    params.globaltime = 2
    assert nodes[1].recv_loop() == 2
    nodes[1].node_loop()
    assert nodes[1].member.in_group
    assert [e.address() for e in nodes[1].member.member_list] == [Address(1, 0)]


def test_ping_merges_gossip(tmp_path):
    params, _, _, nodes, _ = make_group(tmp_path)
    node = nodes[0]
    node.node_start()
    node.member.member_list.append(MemberListEntry(2, 0, 3, 1))

    params.globaltime = 5
    node.recv_callback(
        ping_from(Address(3, 0), [MemberListEntry(2, 0, 7, 4), MemberListEntry(1, 0, 9, 5)])
    )
    by_address = {e.address(): e for e in node.member.member_list}
    assert set(by_address) == {Address(2, 0), Address(3, 0)}
    assert by_address[Address(2, 0)] == MemberListEntry(2, 0, 7, 5)
    assert by_address[Address(3, 0)] == MemberListEntry(3, 0, 1, 5)

    params.globaltime = 6
    node.recv_callback(ping_from(Address(3, 0), [MemberListEntry(2, 0, 4, 6)]))
    by_address = {e.address(): e for e in node.member.member_list}
    assert by_address[Address(2, 0)] == MemberListEntry(2, 0, 7, 5)
    assert by_address[Address(3, 0)] == MemberListEntry(3, 0, 2, 6)


def test_stale_gossip_is_not_added(tmp_path):
    params, _, _, nodes, _ = make_group(tmp_path)
    node = nodes[0]
    node.node_start()
    params.globaltime = TREMOVE + 10
    node.recv_callback(ping_from(Address(2, 0), [MemberListEntry(3, 0, 2, 0)]))
    assert [e.address() for e in node.member.member_list] == [Address(2, 0)]


def test_member_removed_after_tremove(tmp_path):
    params, net, log, nodes, _ = make_group(tmp_path)
    node = nodes[0]
    node.node_start()
    node.member.member_list.append(MemberListEntry(2, 0, 1, 0))

    params.globaltime = TREMOVE - 1
    node.node_loop_ops()
    assert len(node.member.member_list) == 1
    assert [e.destination for e in net.pending] == [Address(2, 0)]

    params.globaltime = TREMOVE
    node.node_loop_ops()
    assert node.member.member_list == []
    assert len(net.pending) == 1
    assert node.member.heartbeat == 2
    assert f"removed at time {TREMOVE}" in log.dbg_path.read_text()


def test_failed_node_receives_nothing(tmp_path):
    params, net, _, nodes, _ = make_group(tmp_path)
    nodes[1].node_start()
    nodes[0].node_start()
    nodes[0].member.failed = True
    params.globaltime = 1
    assert nodes[0].recv_loop() == 0
    assert len(net.pending) == 1
    nodes[0].node_loop()
    assert nodes[0].member.heartbeat == 0


def test_init_resets_state(tmp_path):
    _, _, _, nodes, _ = make_group(tmp_path)
    member = nodes[2].member
    member.failed = True
    member.in_group = True
    member.heartbeat = 42
    member.member_list.append(MemberListEntry(1, 0, 1, 0))
    nodes[2].init_this_node()
    assert member.inited and not member.failed and not member.in_group
    assert member.heartbeat == 0
    assert member.ping_counter == TFAIL
    assert member.timeout_counter == -1
    assert member.member_list == []


def test_finish_up_discards_queue(tmp_path):
    _, _, _, nodes, _ = make_group(tmp_path)
    node = nodes[0]
    node.node_start()
    node.member.enqueue(ping_from(Address(2, 0), []))
    node.finish_up_this_node()
    assert len(node.member.queue) == 0
    assert not node.member.inited