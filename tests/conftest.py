"""
Pytest configuration and fixtures for the relay tests.
"""
import itertools
import json

import pytest
from fastapi.testclient import TestClient

from backend import ConnectionRegistry, RoomStore
from broadcast import BroadcastRouter
from membership import MembershipManager
from session import SessionEventHandler


class FakeConnection:
    """In-memory stand-in for a client socket."""

    _ids = itertools.count(1)

    def __init__(self, name=None, is_open=True):
        self.id = name or f"conn-{next(self._ids)}"
        self.is_open = is_open
        self.sent = []

    def send(self, data):
        self.sent.append(data)
        return True

    @property
    def messages(self):
        return [json.loads(raw) for raw in self.sent]

    def of_type(self, message_type):
        return [m for m in self.messages if m["type"] == message_type]

    def last(self):
        return self.messages[-1]

    def reset(self):
        self.sent.clear()

    def __repr__(self):
        return f"<FakeConnection {self.id}>"


class ExplodingConnection(FakeConnection):
    def send(self, data):
        raise ConnectionResetError("peer went away")


def room_ids(prefix="test-room-id"):
    counter = itertools.count(123)
    return lambda: f"{prefix}-{next(counter)}"


def assert_consistent(membership, connections):
    """Registry and room member maps agree, and no empty room is stored."""
    for conn in connections:
        room_id = membership.registry.get_room(conn)
        in_rooms = [room.id for room in membership.rooms.rooms() if conn in room.members]
        if room_id is None:
            assert in_rooms == []
        else:
            assert in_rooms == [room_id]
    for room in membership.rooms.rooms():
        assert room.member_count > 0


@pytest.fixture
def rooms():
    return RoomStore()


@pytest.fixture
def registry():
    return ConnectionRegistry()


@pytest.fixture
def router(rooms):
    return BroadcastRouter(rooms)


@pytest.fixture
def membership(rooms, registry, router):
    return MembershipManager(rooms=rooms, registry=registry, broadcaster=router, id_generator=room_ids())


@pytest.fixture
def session(membership):
    return SessionEventHandler(membership)


@pytest.fixture
def connect(session):
    """Attach a new fake connection through the session handler, with the welcome already drained."""

    def _connect(name=None):
        conn = FakeConnection(name)
        session.on_connect(conn)
        conn.reset()
        return conn

    return _connect


@pytest.fixture
def send(session):
    def _send(conn, **payload):
        session.on_message(conn, json.dumps(payload))

    return _send


@pytest.fixture
def app():
    from app import create_app

    return create_app(id_generator=room_ids())


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client
