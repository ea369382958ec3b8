"""Achievement catalogue, progress and one-time reward claims."""
