"""Word League — competitive league leaderboards for vocabulary learners."""
