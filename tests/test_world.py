from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from infiltrator.game.actors import NPC, Player, keycard_level
from infiltrator.game.enums import Behavior, Capability, Facing, Verb
from infiltrator.game.world import Element, MissionData, WorldState
from infiltrator.types import ItemId, NpcId, RoomId
from tests.helpers import make_engine, make_mission

MISSION_PATH = Path(__file__).resolve().parent.parent / "missions" / "glass-shadow.json"


@pytest.fixture
def glass_shadow() -> WorldState:
    return WorldState.from_dict(json.loads(MISSION_PATH.read_text()))


class TestMissionData:
    def test_mission_needs_rooms(self) -> None:
        with pytest.raises(ValueError, match="no rooms"):
            MissionData.from_dict(make_mission(rooms={}))

    def test_unknown_starting_room(self) -> None:
        with pytest.raises(ValueError, match="Unknown starting room 'roof'"):
            MissionData.from_dict(make_mission(starting_room="roof"))

    def test_duplicate_npc_ids(self) -> None:
        npcs = [
            {"id": "guard-1", "type": "guard", "location": "lobby-main"},
            {"id": "guard-1", "type": "guard", "location": "hallway-east"},
        ]
        with pytest.raises(ValueError, match="Duplicate NPC id 'guard-1'"):
            MissionData.from_dict(make_mission(npcs=npcs))

    def test_npc_in_unknown_room_is_skipped(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        npcs = [{"id": "ghost", "type": "guard", "location": "attic"}]
        with caplog.at_level(logging.WARNING):
            mission = MissionData.from_dict(make_mission(npcs=npcs))
            assert mission.spawn_npcs() == {}
        assert "unknown room 'attic'" in caplog.text

    def test_element_parsing(self) -> None:
        element = Element.from_dict(
            {"id": "vent", "default_action": "search", "position": {"x": 2, "y": 3}}
        )
        assert element.name == "vent"
        assert element.default_action == Verb.SEARCH
        assert element.position == (2.0, 3.0)
        assert not element.interactive


class TestSpawning:
    def test_npcs_take_their_slot(self, glass_shadow: WorldState) -> None:
        clerk = glass_shadow.npc("receptionist-1")
        assert clerk is not None
        assert clerk.position == (4.0, 3.0)
        assert clerk.facing == Facing.SOUTH
        assert clerk.can_talk

        guard = glass_shadow.npc("guard-1")
        assert guard is not None
        assert guard.behavior == Behavior.PATROL
        assert guard.patrol_path == [(2.0, 4.0), (10.0, 4.0)]
        assert guard.vitals.health == 80
        assert guard.has_capability(Capability.CALL_BACKUP)

    def test_player_starts_with_equipment(self, glass_shadow: WorldState) -> None:
        assert glass_shadow.player.inventory == ["lockpick-set", "medkit"]
        assert glass_shadow.player.position == (1.0, 8.0)

    def test_starting_room_entry_keeps_position(
        self, glass_shadow: WorldState
    ) -> None:
        engine = make_engine(glass_shadow)
        engine.enter_room("lobby-main")
        assert glass_shadow.player.position == (1.0, 8.0)

    def test_unknown_template_uses_defaults(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.WARNING):
            npc = NPC.from_template(NpcId("x"), "janitor", RoomId("lobby-main"))
        assert npc.name == "Unknown"
        assert npc.capabilities == set()
        assert "No NPC template for type 'janitor'" in caplog.text

    def test_world_copies_mission_rooms(self, glass_shadow: WorldState) -> None:
        hallway = glass_shadow.room("hallway-east")
        assert hallway is not None
        hallway.exits[1].locked = False
        original = glass_shadow.mission.rooms[RoomId("hallway-east")]
        assert original.exits[1].locked


class TestWorldState:
    def test_objective_completes_once(self, glass_shadow: WorldState) -> None:
        assert glass_shadow.complete_objective("obj-extract-logs")
        assert not glass_shadow.complete_objective("obj-extract-logs")
        assert not glass_shadow.complete_objective("obj-missing")

    def test_flags_must_be_true(self, glass_shadow: WorldState) -> None:
        glass_shadow.set_flag("alarm_triggered")
        glass_shadow.set_flag("visits", 3)
        assert glass_shadow.has_flag("alarm_triggered")
        assert not glass_shadow.has_flag("visits")
        assert not glass_shadow.has_flag("never_set")

    def test_npcs_in_room(self, glass_shadow: WorldState) -> None:
        assert [n.id for n in glass_shadow.npcs_in_room()] == ["receptionist-1"]
        assert [n.id for n in glass_shadow.npcs_in_room("server-room-3")] == [
            "tech-1"
        ]

    def test_cover(self, glass_shadow: WorldState) -> None:
        lobby = glass_shadow.room("lobby-main")
        hallway = glass_shadow.room("hallway-east")
        servers = glass_shadow.room("server-room-3")
        assert lobby is not None and hallway is not None and servers is not None
        assert lobby.offers_cover
        assert not hallway.offers_cover
        assert servers.offers_cover


class TestKeycards:
    @pytest.mark.parametrize(
        ("item", "level"),
        [("keycard-level1", 1), ("keycard-level3", 3), ("medkit", 0)],
    )
    def test_keycard_level(self, item: str, level: int) -> None:
        assert keycard_level(item) == level

    def test_highest_card_opens_doors(self) -> None:
        player = Player(inventory=[ItemId("keycard-level1"), ItemId("keycard-level3")])
        assert player.keycard_level() == 3
        assert player.can_open(2)
        assert Player().can_open(0)
        assert not Player().can_open(1)
