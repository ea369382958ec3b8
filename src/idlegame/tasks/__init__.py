"""Daily and newbie tasks: progress tracking, reward claims and the daily reset."""
