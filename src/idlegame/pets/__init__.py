"""Creature ownership: newbie grant, listing and stats."""
