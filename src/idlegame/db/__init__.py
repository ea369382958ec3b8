"""ORM base and models."""
