from __future__ import annotations

import pytest

from infiltrator import config
from infiltrator.events import AdvisorLineEvent, EventBus
from infiltrator.game.advisor import (
    RECONNECT_LINES,
    SCRIPTED_LINES,
    AdvisorChannel,
    ScriptedLineProvider,
    connection_quality,
    reliability_for,
)
from infiltrator.game.enums import AdvisorMode, AdvisorTrigger, Reliability
from infiltrator.game.vitals import Vitals
from infiltrator.util.rng import RNGProvider
from tests.helpers import RecordingProvider, collect


@pytest.fixture
def provider() -> RecordingProvider:
    return RecordingProvider()


@pytest.fixture
def channel(bus: EventBus, provider: RecordingProvider) -> AdvisorChannel:
    return AdvisorChannel(bus, provider)


class TestCooldown:
    def test_request_delivers_and_starts_cooldown(
        self, channel: AdvisorChannel, bus: EventBus
    ) -> None:
        lines = collect(bus, AdvisorLineEvent)

        text = channel.request(AdvisorTrigger.ENTER_ROOM, "lobby-main")

        assert text == "enter_room:lobby-main"
        assert channel.cooldown == 40
        assert lines[0].trigger == AdvisorTrigger.ENTER_ROOM
        assert lines[0].reliability == Reliability.CLEAR
        assert list(channel.history) == [text]

    def test_requests_suppressed_until_cooldown_runs_out(
        self, channel: AdvisorChannel, provider: RecordingProvider
    ) -> None:
        channel.request(AdvisorTrigger.ENTER_ROOM)
        for _ in range(39):
            channel.tick()
        assert channel.request(AdvisorTrigger.SPOT_NPC) is None
        channel.tick()
        assert channel.request(AdvisorTrigger.SPOT_NPC) == "spot_npc:None"
        assert len(provider.calls) == 2

    @pytest.mark.parametrize(
        ("mode", "ticks"),
        [
            (AdvisorMode.CAUTIOUS, 60),
            (AdvisorMode.BALANCED, 40),
            (AdvisorMode.AGGRESSIVE, 25),
        ],
    )
    def test_cooldown_follows_mode(
        self, bus: EventBus, provider: RecordingProvider, mode: AdvisorMode, ticks: int
    ) -> None:
        channel = AdvisorChannel(bus, provider, mode)
        channel.request(AdvisorTrigger.DANGER)
        assert channel.cooldown == ticks

    def test_force_bypasses_cooldown(self, channel: AdvisorChannel) -> None:
        channel.request(AdvisorTrigger.ENTER_ROOM)
        channel.force("Contact!", AdvisorTrigger.DANGER)
        assert channel.history[-1] == "Contact!"
        assert channel.cooldown == config.ADVISOR_MIN_COOLDOWN_TICKS


class TestConnection:
    def test_quality_drops_with_stress_and_injury(self) -> None:
        assert connection_quality(Vitals()) == 100
        assert connection_quality(Vitals(stress=40, health=20)) == 40
        assert connection_quality(Vitals(stress=100, health=5)) == 0

    @pytest.mark.parametrize(
        ("quality", "reliability"),
        [
            (100, Reliability.CLEAR),
            (50, Reliability.CLEAR),
            (49, Reliability.STATIC),
            (10, Reliability.STATIC),
            (9, Reliability.OFFLINE),
        ],
    )
    def test_reliability_bands(self, quality: float, reliability: Reliability) -> None:
        assert reliability_for(quality) == reliability

    def test_offline_channel_stays_silent(
        self, channel: AdvisorChannel, provider: RecordingProvider
    ) -> None:
        channel.update_connection(Vitals(stress=95))
        assert channel.is_offline
        assert channel.request(AdvisorTrigger.DANGER) is None
        assert provider.calls == []

    def test_reconnect_is_announced(
        self, channel: AdvisorChannel, bus: EventBus
    ) -> None:
        channel.update_connection(Vitals(stress=95))
        lines = collect(bus, AdvisorLineEvent)

        channel.update_connection(Vitals(stress=20))

        assert [line.text for line in lines] == [RECONNECT_LINES[0]]
        assert lines[0].trigger is None

    def test_static_reaches_the_provider(
        self, channel: AdvisorChannel, provider: RecordingProvider
    ) -> None:
        channel.update_connection(Vitals(stress=40, health=20))
        channel.request(AdvisorTrigger.PLAYER_IDLE, "medium_stress")
        assert provider.calls == [
            (AdvisorTrigger.PLAYER_IDLE, Reliability.STATIC, "medium_stress")
        ]


class TestScriptedLines:
    def test_context_selects_group(self, rng: RNGProvider) -> None:
        lines = ScriptedLineProvider(rng.get("advisor.lines"))
        text = lines.line(AdvisorTrigger.ENTER_ROOM, Reliability.CLEAR, "lobby-main")
        assert text in SCRIPTED_LINES[AdvisorTrigger.ENTER_ROOM]["lobby-main"]

    def test_unknown_context_falls_back_to_default(self, rng: RNGProvider) -> None:
        lines = ScriptedLineProvider(rng.get("advisor.lines"))
        text = lines.line(AdvisorTrigger.SPOT_NPC, Reliability.CLEAR, "executive")
        assert text in SCRIPTED_LINES[AdvisorTrigger.SPOT_NPC]["default"]

    def test_no_default_draws_from_every_group(self, rng: RNGProvider) -> None:
        lines = ScriptedLineProvider(rng.get("advisor.lines"))
        text = lines.line(AdvisorTrigger.DANGER, Reliability.CLEAR)
        every = [
            line for group in SCRIPTED_LINES[AdvisorTrigger.DANGER].values()
            for line in group
        ]
        assert text in every

    def test_trigger_without_lines(self, rng: RNGProvider) -> None:
        lines = ScriptedLineProvider(rng.get("advisor.lines"))
        assert lines.line(AdvisorTrigger.STRESS_CHANGE, Reliability.CLEAR) is None

    def test_static_garbles_text(self, rng: RNGProvider) -> None:
        lines = ScriptedLineProvider(rng.get("advisor.lines"), garble_chance=1.0)
        assert lines.line(AdvisorTrigger.OBJECTIVE_NEAR, Reliability.STATIC) == "..."
        assert lines.garble("...") == "..."

    def test_same_seed_same_lines(self) -> None:
        first = ScriptedLineProvider(RNGProvider("replay").get("advisor.lines"))
        second = ScriptedLineProvider(RNGProvider("replay").get("advisor.lines"))
        picks = [
            (
                first.line(AdvisorTrigger.ENTER_ROOM, Reliability.CLEAR),
                second.line(AdvisorTrigger.ENTER_ROOM, Reliability.CLEAR),
            )
            for _ in range(5)
        ]
        assert all(a == b for a, b in picks)


def test_channel_state_round_trip(bus: EventBus, provider: RecordingProvider) -> None:
    channel = AdvisorChannel(bus, provider, AdvisorMode.CAUTIOUS)
    channel.request(AdvisorTrigger.ENTER_ROOM)
    channel.update_connection(Vitals(stress=30))

    restored = AdvisorChannel(bus, provider)
    restored.restore(channel.to_dict())

    assert restored.mode == AdvisorMode.CAUTIOUS
    assert restored.cooldown == 60
    assert restored.quality == 70
