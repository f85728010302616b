"""League tiers, bots, ranking and the scheduled league job."""
