"""Experience curve, level-ups and production bonus."""
