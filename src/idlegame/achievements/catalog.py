"""Static achievement catalogue.

``kind`` selects the counter an achievement is measured against; ``condition``
is the threshold that unlocks it.
"""

from __future__ import annotations

FUSION_COUNT = "FUSION_COUNT"
PET_COUNT = "PET_COUNT"
RARITY_RARE = "RARITY_RARE"
RARITY_EPIC = "RARITY_EPIC"
RARITY_LEGENDARY = "RARITY_LEGENDARY"
RARITY_MYTHIC = "RARITY_MYTHIC"
PET_LEVEL = "PET_LEVEL"
MINE_COUNT = "MINE_COUNT"

ACHIEVEMENTS: list[dict] = [
    {"id": "ACH_FUSION_1", "name": "Fusion Apprentice", "description": "Attempt your first fusion",
     "kind": FUSION_COUNT, "condition": 1, "tier": "BRONZE", "gems": 50, "shells": 100},
    {"id": "ACH_FUSION_10", "name": "Fusion Master", "description": "Attempt 10 fusions",
     "kind": FUSION_COUNT, "condition": 10, "tier": "SILVER", "gems": 200, "shells": 500},
    {"id": "ACH_FUSION_50", "name": "Fusion Legend", "description": "Attempt 50 fusions",
     "kind": FUSION_COUNT, "condition": 50, "tier": "GOLD", "gems": 500, "shells": 1000},
    {"id": "ACH_PET_5", "name": "Collector", "description": "Own 5 pets",
     "kind": PET_COUNT, "condition": 5, "tier": "BRONZE", "gems": 30, "shells": 50},
    {"id": "ACH_PET_20", "name": "Keeper", "description": "Own 20 pets",
     "kind": PET_COUNT, "condition": 20, "tier": "SILVER", "gems": 150, "shells": 300},
    {"id": "ACH_PET_50", "name": "Menagerie", "description": "Own 50 pets",
     "kind": PET_COUNT, "condition": 50, "tier": "GOLD", "gems": 400, "shells": 800},
    {"id": "ACH_RARE_1", "name": "Lucky Find", "description": "Own a RARE pet",
     "kind": RARITY_RARE, "condition": 1, "tier": "BRONZE", "gems": 50, "shells": 0},
    {"id": "ACH_EPIC_1", "name": "Epic Bond", "description": "Own an EPIC pet",
     "kind": RARITY_EPIC, "condition": 1, "tier": "SILVER", "gems": 100, "shells": 0},
    {"id": "ACH_LEGENDARY_1", "name": "Living Legend", "description": "Own a LEGENDARY pet",
     "kind": RARITY_LEGENDARY, "condition": 1, "tier": "GOLD", "gems": 200, "shells": 0},
    {"id": "ACH_MYTHIC_1", "name": "Myth Made Real", "description": "Own a MYTHIC pet",
     "kind": RARITY_MYTHIC, "condition": 1, "tier": "DIAMOND", "gems": 500, "shells": 0},
    {"id": "ACH_LEVEL_10", "name": "Trainer", "description": "Raise a pet to level 10",
     "kind": PET_LEVEL, "condition": 10, "tier": "BRONZE", "gems": 80, "shells": 150},
    {"id": "ACH_LEVEL_20", "name": "Veteran Trainer", "description": "Raise a pet to level 20",
     "kind": PET_LEVEL, "condition": 20, "tier": "SILVER", "gems": 180, "shells": 350},
    {"id": "ACH_LEVEL_30", "name": "Grand Trainer", "description": "Raise a pet to level 30",
     "kind": PET_LEVEL, "condition": 30, "tier": "GOLD", "gems": 300, "shells": 600},
    {"id": "ACH_MINE_10", "name": "Prospector", "description": "Finish 10 mine challenges",
     "kind": MINE_COUNT, "condition": 10, "tier": "BRONZE", "gems": 100, "shells": 0},
    {"id": "ACH_MINE_50", "name": "Deep Delver", "description": "Finish 50 mine challenges",
     "kind": MINE_COUNT, "condition": 50, "tier": "SILVER", "gems": 250, "shells": 0},
]

ACHIEVEMENTS_BY_ID: dict[str, dict] = {a["id"]: a for a in ACHIEVEMENTS}
