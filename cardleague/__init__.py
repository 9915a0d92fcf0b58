"""Card league engine: chemistry, team strength, match simulation, scheduling, standings, rewards."""
