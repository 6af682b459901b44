import pygame

from conftest import FakeClock, RecordingRelay

from minigames.shared.uplink import InputUplink, keyboard_axes


class FakeKeys(dict):
    def __getitem__(self, key):
        return self.get(key, False)


class TestKeyboard:
    def test_wasd_and_arrows(self):
        assert keyboard_axes(FakeKeys({pygame.K_d: True})) == (1.0, 0.0)
        assert keyboard_axes(FakeKeys({pygame.K_UP: True})) == (0.0, -1.0)
        assert keyboard_axes(FakeKeys()) == (0.0, 0.0)

    def test_opposite_keys_cancel(self):
        assert keyboard_axes(FakeKeys({pygame.K_a: True, pygame.K_RIGHT: True})) == (0.0, 0.0)


class TestUplink:
    def test_sends_below_frame_rate(self):
        relay = RecordingRelay()
        clock = FakeClock()
        uplink = InputUplink(relay, "AB12", "u1", clock=clock)
        for _ in range(60):
            clock.advance(1 / 60)
            uplink.update(1 / 60, (1.0, 1.0))
        sent = relay.of_type("input")
        assert 15 <= len(sent) <= 20
        first = sent[0]
        assert first["key"] == "u1"
        assert abs(first["ax"] - 0.7071) < 1e-3
        times = [p["t"] for p in sent]
        assert times == sorted(times)

    def test_spectator_never_sends(self):
        relay = RecordingRelay()
        uplink = InputUplink(relay, "AB12", None)
        for _ in range(60):
            assert uplink.update(1 / 60, (1.0, 0.0)) is None
        assert relay.sent == []

    def test_closed_uplink_is_silent(self):
        relay = RecordingRelay()
        uplink = InputUplink(relay, "AB12", "u1")
        uplink.close()
        assert uplink.update(1.0, (1.0, 0.0)) is None
        assert relay.sent == []
