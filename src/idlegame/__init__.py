"""Economy engine for an idle creature-collecting game."""

__version__ = "0.1.0"
