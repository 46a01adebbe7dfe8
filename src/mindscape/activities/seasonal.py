"""Seasonal skins for activity templates."""

from __future__ import annotations

import logging
import random

from mindscape.activities.catalog import ActivityTemplate
from mindscape.activities.season import Season

logger = logging.getLogger(__name__)

DEFAULT_VARIANT_CHANCE = 0.3

# Summer has no entry: no seasonal skins are offered in summer.
SEASONAL_NAMES: dict[Season, dict[str, str]] = {
    "spring": {
        "cloud_catcher": "Cherry Blossom Catcher",
        "garden_bloom": "Spring Flower Bloom",
        "balloon_voyage": "Butterfly Balloon Ride",
    },
    "autumn": {
        "cloud_catcher": "Autumn Leaf Catcher",
        "garden_bloom": "Harvest Moon Garden",
        "wind_chime": "Autumn Wind Symphony",
    },
    "winter": {
        "cloud_catcher": "Snowflake Catcher",
        "star_path": "Aurora Path",
        "lantern_release": "Winter Solstice Lantern",
    },
}

SUPPRESSED_SEASONS: frozenset[Season] = frozenset({"summer"})


def generate_variant(template: ActivityTemplate, season: Season) -> ActivityTemplate:
    """Return the seasonal skin of ``template``, or the template itself if none exists.

    A skin renames the activity, prefixes the reward item with the season and
    upgrades a common reward to rare. Rare and legendary rewards keep their
    rarity.
    """
    if season in SUPPRESSED_SEASONS:
        return template
    seasonal_name = SEASONAL_NAMES.get(season, {}).get(template.type)
    if seasonal_name is None:
        return template

    reward = template.base_reward
    return template.model_copy(
        update={
            "name": seasonal_name,
            "seasonal_tag": season,
            "base_reward": reward.model_copy(
                update={
                    "item_name": f"{season} {reward.item_name}",
                    "rarity": "rare" if reward.rarity == "common" else reward.rarity,
                }
            ),
        }
    )


def roll_variant(
    template: ActivityTemplate,
    season: Season,
    rng: random.Random,
    chance: float = DEFAULT_VARIANT_CHANCE,
) -> ActivityTemplate:
    """Seasonalize ``template`` with probability ``chance``.

    No random draw is made in a suppressed season.
    """
    if season in SUPPRESSED_SEASONS:
        return template
    if rng.random() < chance:
        variant = generate_variant(template, season)
        if variant is not template:
            logger.debug("Seasonal variant %s -> %s", template.type, variant.name)
        return variant
    return template
