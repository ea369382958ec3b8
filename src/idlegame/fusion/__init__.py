"""Probabilistic fusion of pets into a higher rarity."""
