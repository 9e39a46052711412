"""Tests for membership transitions and the registry/room consistency they maintain."""
import pytest

from errors import RoomAlreadyExistsError, RoomIdRequiredError, RoomNotFoundError
from membership import MembershipManager
from tests.conftest import FakeConnection, assert_consistent


@pytest.fixture
def conns():
    return [FakeConnection(f"c{i}") for i in range(3)]


class TestCreateRoom:
    def test_creator_is_sole_member(self, membership, conns):
        a = conns[0]
        room_id, member = membership.create_room(a, "alice")
        assert room_id == "test-room-id-123"
        assert member.username == "alice"
        assert list(membership.rooms.get(room_id).members) == [a]
        assert membership.registry.get_room(a) == room_id
        assert_consistent(membership, conns)

    def test_default_username_uses_join_timestamp(self, rooms, registry, router):
        manager = MembershipManager(rooms, registry, router, id_generator=lambda: "r", clock=lambda: 1700000000000)
        _, member = manager.create_room(FakeConnection())
        assert member.username == "User_1700000000000"
        assert member.joined_at == 1700000000000

    def test_empty_username_gets_default(self, membership):
        _, member = membership.create_room(FakeConnection(), "")
        assert member.username.startswith("User_")

    def test_create_while_in_room_leaves_old_room(self, membership, conns):
        a, b, _ = conns
        old_room, _ = membership.create_room(a, "alice")
        membership.join_room(b, old_room, "bob")
        a.reset()
        b.reset()

        new_room, _ = membership.create_room(a, "alice")

        assert new_room != old_room
        assert membership.registry.get_room(a) == new_room
        assert list(membership.rooms.get(old_room).members) == [b]
        assert [m["type"] for m in b.messages] == ["user_left"]
        assert a.messages == [{"type": "room_left", "message": f"Left room {old_room}", "timestamp": a.last()["timestamp"]}]
        assert_consistent(membership, conns)

    def test_id_collision_does_not_overwrite(self, rooms, registry, router):
        manager = MembershipManager(rooms, registry, router, id_generator=lambda: "same")
        a, b = FakeConnection(), FakeConnection()
        manager.create_room(a, "alice")
        with pytest.raises(RoomAlreadyExistsError):
            manager.create_room(b, "bob")
        assert list(rooms.get("same").members) == [a]
        assert registry.get_room(b) is None
        assert_consistent(manager, [a, b])


class TestJoinRoom:
    def test_join_announces_to_others_only(self, membership, conns):
        a, b, _ = conns
        room_id, _ = membership.create_room(a, "alice")
        a.reset()

        joined_room, member = membership.join_room(b, room_id, "bob")

        assert joined_room == room_id
        assert a.messages == [{"type": "user_joined", "message": "bob joined the room", "joined_at": member.joined_at}]
        assert b.sent == []
        assert_consistent(membership, conns)

    @pytest.mark.parametrize("room_id", [None, ""])
    def test_room_id_required(self, membership, room_id):
        with pytest.raises(RoomIdRequiredError):
            membership.join_room(FakeConnection(), room_id, "bob")

    def test_missing_room_leaves_state_untouched(self, membership, conns):
        a, b, _ = conns
        room_id, _ = membership.create_room(a, "alice")
        membership.create_room(b, "bob")
        with pytest.raises(RoomNotFoundError):
            membership.join_room(a, "does-not-exist", "alice")
        assert membership.registry.get_room(a) == room_id
        assert_consistent(membership, conns)

    def test_switching_rooms_sends_one_departure(self, membership, conns):
        a, b, c = conns
        first, _ = membership.create_room(a, "alice")
        membership.join_room(b, first, "bob")
        second, _ = membership.create_room(c, "carol")
        a.reset()

        membership.join_room(b, second, "bob")

        assert len(a.of_type("user_left")) == 1
        assert a.of_type("user_left")[0]["client_info"]["username"] == "bob"
        assert membership.registry.get_room(b) == second
        assert b not in membership.rooms.get(first).members
        assert_consistent(membership, conns)

    def test_rejoining_current_room_changes_nothing(self, membership, conns):
        a, b, _ = conns
        room_id, _ = membership.create_room(a, "alice")
        _, original = membership.join_room(b, room_id, "bob")
        a.reset()
        b.reset()

        _, member = membership.join_room(b, room_id, "bob")

        assert member == original
        assert a.sent == [] and b.sent == []
        assert membership.rooms.get(room_id).member_count == 2

    def test_sole_member_rejoining_keeps_room(self, membership):
        a = FakeConnection()
        room_id, _ = membership.create_room(a, "alice")
        membership.join_room(a, room_id, "alice")
        assert membership.rooms.get(room_id) is not None


class TestRemoval:
    def test_leave_notifies_remaining_members(self, membership, conns):
        a, b, _ = conns
        room_id, creator = membership.create_room(a, "alice")
        membership.join_room(b, room_id, "bob")
        b.reset()

        departed = membership.leave_room(a)

        assert departed.room_id == room_id
        assert b.messages == [
            {
                "type": "user_left",
                "message": "alice left the room",
                "client_info": {"username": "alice", "joined_at": creator.joined_at},
                "timestamp": b.last()["timestamp"],
            }
        ]
        assert_consistent(membership, conns)

    def test_last_member_leaving_deletes_room(self, membership):
        a = FakeConnection()
        room_id, _ = membership.create_room(a, "alice")
        membership.leave_room(a)
        assert membership.rooms.get(room_id) is None
        with pytest.raises(RoomNotFoundError):
            membership.join_room(FakeConnection(), room_id, "carol")

    def test_removal_is_idempotent(self, membership, conns):
        a, b, _ = conns
        room_id, _ = membership.create_room(a, "alice")
        membership.join_room(b, room_id, "bob")
        a.reset()

        assert membership.remove_from_current_room(b) is not None
        assert membership.remove_from_current_room(b) is None
        assert len(a.of_type("user_left")) == 1
        assert_consistent(membership, conns)

    def test_disconnect_sends_nothing_to_departing_connection(self, membership, conns):
        a, b, _ = conns
        membership.connect(b)
        room_id, _ = membership.create_room(a, "alice")
        membership.join_room(b, room_id, "bob")
        b.reset()

        membership.disconnect(b)

        assert b.sent == []
        assert b not in membership.registry
        assert list(membership.rooms.get(room_id).members) == [a]
        assert_consistent(membership, conns)

    def test_disconnect_without_room(self, membership):
        conn = FakeConnection()
        membership.connect(conn)
        assert membership.disconnect(conn) is None
        assert membership.disconnect(conn) is None
        assert membership.registry.connection_count == 0
