"""Energy regeneration, consumption and purchase."""
