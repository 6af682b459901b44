"""Shared fixtures: headless pygame, an in-process relay and a display-free scene stack."""

import json
import os

os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
os.environ.setdefault("SDL_AUDIODRIVER", "dummy")

import pygame
import pytest

from relay import STATUS_OPEN, make_envelope


class LoopbackHub:
    """Room broadcaster that lives in the test process; delivery is immediate."""

    def __init__(self):
        self.clients = []
        self.sent = []

    def connect(self, user_id):
        client = LoopbackRelay(self, user_id)
        self.clients.append(client)
        return client

    def route(self, sender, envelope):
        self.sent.append(envelope)
        exclude_self = envelope.get("excludeSelf", True)
        for client in self.clients:
            if client is sender and exclude_self:
                continue
            if client.room != envelope["sessionCode"]:
                continue
            client.inbox.append(json.loads(json.dumps(envelope)))

    def sent_of(self, msg_type):
        return [env for env in self.sent if env["type"] == msg_type]


class LoopbackRelay:
    """Same join/send/on_message/poll surface as RelayClient, no sockets."""

    def __init__(self, hub, user_id):
        self.hub = hub
        self.user_id = user_id
        self.room = None
        self.status = STATUS_OPEN
        self.inbox = []
        self.handlers = []
        self.joins = 0
        self.drop_types = set()
        self.reorder = False

    def join(self, room):
        if self.room == room:
            return
        self.room = room
        self.joins += 1

    def send(self, room, msg_type, payload, exclude_self=True):
        if self.status != STATUS_OPEN or self.room != room:
            return
        if msg_type in self.drop_types:
            return
        # through JSON, like the wire
        envelope = json.loads(json.dumps(make_envelope(msg_type, room, payload, exclude_self)))
        self.hub.route(self, envelope)

    def inject(self, msg_type, payload, room=None):
        self.inbox.append(make_envelope(msg_type, room or self.room, payload))

    def on_message(self, handler):
        self.handlers.append(handler)

        def unsubscribe():
            if handler in self.handlers:
                self.handlers.remove(handler)

        return unsubscribe

    def poll(self):
        pending, self.inbox = self.inbox, []
        if self.reorder:
            pending.reverse()
        handled = 0
        for msg in pending:
            if msg.get("sessionCode") != self.room:
                continue
            handled += 1
            for handler in list(self.handlers):
                handler(msg)
        return handled


class RecordingRelay:
    """Collects sends; nothing is delivered anywhere."""

    def __init__(self):
        self.sent = []

    def send(self, room, msg_type, payload, exclude_self=True):
        self.sent.append((room, msg_type, payload))

    def of_type(self, msg_type):
        return [payload for _, t, payload in self.sent if t == msg_type]


class FakeClock:
    def __init__(self, start=0.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, dt):
        self.now += dt


class DummyManager:
    """SceneManager stand-in drawing to an off-screen surface."""

    def __init__(self, size=(960, 600)):
        self.screen = pygame.Surface(size)
        self.size = size
        self.scenes = []
        self.running = True

    def push(self, scene):
        self.scenes.append(scene)

    def pop(self):
        if self.scenes:
            self.scenes.pop().on_exit()
        if not self.scenes:
            self.running = False

    def switch(self, scene):
        if self.scenes:
            self.scenes.pop().on_exit()
        self.push(scene)


def run_frames(scenes, frames, dt=1.0 / 60.0, clock=None, draw=False):
    for _ in range(frames):
        if clock is not None:
            clock.advance(dt)
        for scene in scenes:
            scene.update(dt)
            if draw:
                scene.draw()


@pytest.fixture(scope="session", autouse=True)
def pygame_session():
    pygame.init()
    yield
    pygame.quit()


@pytest.fixture
def hub():
    return LoopbackHub()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def manager():
    return DummyManager()


@pytest.fixture
def roster():
    return [{"id": "u1", "name": "Ana"}, {"id": "u2", "name": "Bo"}]
