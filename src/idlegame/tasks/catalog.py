"""Static task catalogue.

Daily tasks count progress per UTC day and are cleared by the midnight reset.
Newbie tasks count once per player and never reset. ``condition`` names the
event a task listens to; ``target`` is the amount that completes it.
"""

from __future__ import annotations

DAILY = "DAILY"
NEWBIE = "NEWBIE"

ONCE_PERIOD = "ONCE"

PRODUCTION_SECONDS = "PRODUCTION_SECONDS"
FUSION_COUNT = "FUSION_COUNT"
MINE_COUNT = "MINE_COUNT"

REWARD_GEM = "gem"
REWARD_SHELL = "shell"
REWARD_ENERGY = "energy"
REWARD_PET_EGG = "pet_egg"

TASKS: list[dict] = [
    {"id": "DAILY_PRODUCTION", "kind": DAILY, "name": "Daily Grind",
     "description": "Produce for one hour", "condition": PRODUCTION_SECONDS, "target": 3600,
     "rewards": [{"type": REWARD_GEM, "amount": 50}, {"type": REWARD_SHELL, "amount": 100}]},
    {"id": "DAILY_FUSION", "kind": DAILY, "name": "Daily Fusion",
     "description": "Attempt one fusion", "condition": FUSION_COUNT, "target": 1,
     "rewards": [{"type": REWARD_SHELL, "amount": 50}, {"type": REWARD_ENERGY, "amount": 10}]},
    {"id": "DAILY_MINE", "kind": DAILY, "name": "Daily Expedition",
     "description": "Finish one mine challenge", "condition": MINE_COUNT, "target": 1,
     "rewards": [{"type": REWARD_GEM, "amount": 30}, {"type": REWARD_ENERGY, "amount": 10}]},
    {"id": "NEWBIE_PRODUCTION", "kind": NEWBIE, "name": "First Shift",
     "description": "Produce for thirty minutes", "condition": PRODUCTION_SECONDS, "target": 1800,
     "rewards": [{"type": REWARD_GEM, "amount": 100}, {"type": REWARD_SHELL, "amount": 200}]},
    {"id": "NEWBIE_FUSION", "kind": NEWBIE, "name": "First Fusion",
     "description": "Attempt your first fusion", "condition": FUSION_COUNT, "target": 1,
     "rewards": [{"type": REWARD_PET_EGG, "amount": 1, "rarity": "COMMON"}]},
]

TASKS_BY_ID: dict[str, dict] = {task["id"]: task for task in TASKS}

DAILY_TASK_IDS: list[str] = [task["id"] for task in TASKS if task["kind"] == DAILY]
