"""Timed mine challenges and their settlement sweep."""
