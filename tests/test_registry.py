import pytest

from exceptions import RoomFull
from registry import ConnectionRegistry


def assert_consistent(registry: ConnectionRegistry):
    """Every room member points back at the room and no room is empty or over capacity."""
    rooms = registry.rooms()
    for room_id, members in rooms.items():
        assert members, f"empty room {room_id} left behind"
        if registry.capacity:
            assert len(members) <= registry.capacity
        for conn_id in members:
            assert registry.room_of(conn_id) == room_id


def test_first_join_creates_room(registry):
    result = registry.join("a", "r1", "alice")

    assert result.room == "r1"
    assert result.peer_count == 1
    assert result.peers == frozenset()
    assert result.changed is True
    assert registry.room_of("a") == "r1"
    assert registry.members("r1") == {"a"}
    assert registry.display_name_of("a") == "alice"
    assert_consistent(registry)


def test_second_join_reports_existing_peer(registry):
    registry.join("a", "r1")
    result = registry.join("b", "r1")

    assert result.peer_count == 2
    assert result.peers == {"a"}
    assert_consistent(registry)


def test_display_name_defaults_to_connection_id(registry):
    registry.join("a", "r1")
    assert registry.display_name_of("a") == "a"


def test_repeated_join_is_a_noop(registry):
    registry.join("a", "r1")
    registry.join("b", "r1")

    result = registry.join("a", "r1")

    assert result.changed is False
    assert result.peer_count == 2
    assert registry.members("r1") == {"a", "b"}


def test_third_member_is_rejected_without_mutation(registry):
    registry.join("a", "r1")
    registry.join("b", "r1")
    registry.connect("c")

    with pytest.raises(RoomFull) as excinfo:
        registry.join("c", "r1")

    assert excinfo.value.message == "room full"
    assert registry.members("r1") == {"a", "b"}
    assert registry.room_of("c") is None
    assert_consistent(registry)


def test_member_of_full_room_can_rejoin_it(registry):
    registry.join("a", "r1")
    registry.join("b", "r1")

    assert registry.join("b", "r1").changed is False


def test_leave_returns_room_and_deletes_it_when_empty(registry):
    registry.join("a", "r1")
    registry.join("b", "r1")

    assert registry.leave("b") == "r1"
    assert registry.members("r1") == {"a"}
    assert registry.room_of("b") is None

    assert registry.leave("a") == "r1"
    assert "r1" not in registry.rooms()
    assert_consistent(registry)


def test_leave_without_room_is_noop(registry):
    registry.connect("a")
    assert registry.leave("a") is None
    assert registry.leave("never-seen") is None


def test_disconnect_is_idempotent(registry):
    registry.join("a", "r1")

    assert registry.disconnect("a") == "r1"
    assert registry.disconnect("a") is None
    assert not registry.is_connected("a")
    assert registry.rooms() == {}


def test_disconnect_of_unjoined_connection(registry):
    registry.connect("a")
    assert registry.disconnect("a") is None
    assert registry.connection_count() == 0


def test_resolve_target_prefers_explicit_room(registry):
    registry.join("a", "r1")

    assert registry.resolve_target("other", "a") == "other"
    assert registry.resolve_target(None, "a") == "r1"
    assert registry.resolve_target(None, "unknown") is None


def test_cross_room_join_moves_connection(registry):
    registry.join("a", "r1")
    registry.join("b", "r1")

    result = registry.join("a", "r2")

    assert result.left_room == "r1"
    assert registry.room_of("a") == "r2"
    assert registry.members("r1") == {"b"}
    assert registry.members("r2") == {"a"}
    assert_consistent(registry)


def test_cross_room_join_into_full_room_keeps_current_room(registry):
    registry.join("a", "r1")
    registry.join("b", "r2")
    registry.join("c", "r2")

    with pytest.raises(RoomFull):
        registry.join("a", "r2")

    assert registry.room_of("a") == "r1"
    assert registry.members("r2") == {"b", "c"}


def test_unbounded_capacity():
    registry = ConnectionRegistry(capacity=0)
    for conn_id in ("a", "b", "c", "d"):
        registry.join(conn_id, "default")

    assert len(registry.members("default")) == 4
    assert registry.is_full("default") is False


def test_capacity_never_exceeded_under_many_joins(registry):
    for i in range(10):
        try:
            registry.join(f"c{i}", f"r{i % 3}")
        except RoomFull:
            pass
        assert_consistent(registry)

    assert all(len(members) <= 2 for members in registry.rooms().values())
