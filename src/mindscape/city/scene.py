"""City scene contract.

Builds the typed entity list handed to the scene renderer (placed items,
NPCs, season tag) and applies placement changes coming back from it.
"""

from __future__ import annotations

import random
from datetime import date

import structlog
from pydantic import BaseModel, Field

from mindscape.activities.season import Season, resolve_season
from mindscape.notifications.channel import Toast
from mindscape.store.base import Row, TableStore

logger = structlog.get_logger()

QUICK_PLACE_SPAN = 10.0
DEFAULT_GREETING = "Hello there!"


class Position(BaseModel):
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0


class SceneItem(BaseModel):
    id: str
    name: str
    item_type: str
    rarity: str
    position: Position = Field(default_factory=Position)
    placed: bool = False

    @classmethod
    def from_row(cls, row: Row) -> SceneItem:
        return cls(
            id=str(row["id"]),
            name=row["item_name"],
            item_type=row["item_type"],
            rarity=row.get("rarity") or "common",
            position=Position(
                x=row.get("position_x") or 0.0,
                y=row.get("position_y") or 0.0,
                z=row.get("position_z") or 0.0,
            ),
            placed=bool(row.get("is_placed")),
        )


class SceneNpc(BaseModel):
    id: str
    name: str
    npc_type: str
    position: Position
    greeting: str = DEFAULT_GREETING


DEFAULT_NPCS: tuple[SceneNpc, ...] = (
    SceneNpc(
        id="npc_1",
        name="Luna the Guide",
        npc_type="quest_giver",
        position=Position(x=2, y=0, z=2),
        greeting="Welcome to your magical city!",
    ),
    SceneNpc(
        id="npc_2",
        name="Melody the Musician",
        npc_type="musician",
        position=Position(x=-2, y=0, z=-2),
        greeting="Let's make some beautiful music!",
    ),
)


class CityScene(BaseModel):
    season: Season
    items: list[SceneItem] = Field(default_factory=list)
    npcs: list[SceneNpc] = Field(default_factory=list)
    inventory: list[SceneItem] = Field(default_factory=list)

    def find_item(self, item_id: str) -> SceneItem | None:
        return next((item for item in [*self.items, *self.inventory] if item.id == item_id), None)

    def find_npc(self, npc_id: str) -> SceneNpc | None:
        return next((npc for npc in self.npcs if npc.id == npc_id), None)


async def load_city(store: TableStore, user_id: str, today: date | None = None) -> CityScene:
    rows = await store.select("city_items", {"user_id": user_id})
    items = [SceneItem.from_row(row) for row in rows]
    return CityScene(
        season=resolve_season(today),
        items=[item for item in items if item.placed],
        npcs=list(DEFAULT_NPCS),
        inventory=[item for item in items if not item.placed],
    )


async def place_item(store: TableStore, user_id: str, item_id: str, position: Position) -> bool:
    changed = await store.update(
        "city_items",
        {"id": item_id, "user_id": user_id},
        {"position_x": position.x, "position_y": position.y, "position_z": position.z, "is_placed": True},
    )
    logger.info("city_item_placed", user_id=user_id, item_id=item_id, changed=changed)
    return changed > 0


async def remove_item(store: TableStore, user_id: str, item_id: str) -> bool:
    """Move a placed item back to the inventory."""
    changed = await store.update(
        "city_items",
        {"id": item_id, "user_id": user_id},
        {"position_x": 0.0, "position_y": 0.0, "position_z": 0.0, "is_placed": False},
    )
    logger.info("city_item_removed", user_id=user_id, item_id=item_id, changed=changed)
    return changed > 0


def random_ground_position(rng: random.Random) -> Position:
    return Position(
        x=(rng.random() - 0.5) * QUICK_PLACE_SPAN,
        y=0.0,
        z=(rng.random() - 0.5) * QUICK_PLACE_SPAN,
    )


async def quick_place(
    store: TableStore,
    user_id: str,
    item_id: str,
    rng: random.Random | None = None,
) -> Position | None:
    """Place an inventory item at a random spot on the ground plane."""
    position = random_ground_position(rng or random.Random())
    if not await place_item(store, user_id, item_id, position):
        return None
    return position


def describe_click(scene: CityScene, target_id: str) -> Toast | None:
    """Toast text for a click on an item or NPC in the scene."""
    item = scene.find_item(target_id)
    if item is not None:
        return Toast(title=item.name, description=f"A {item.rarity} {item.item_type} in your magical city")
    npc = scene.find_npc(target_id)
    if npc is not None:
        return Toast(title=npc.name, description=npc.greeting or DEFAULT_GREETING)
    return None
