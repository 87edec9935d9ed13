"""
Constants used across the wave planning system.
"""

# Starting configuration for newly provisioned standard waves
DEFAULT_TEAMS_PER_SESSION = 2
DEFAULT_DISTRIBUTION_ALGORITHM = "alphabetical"

MIN_TEAMS_PER_SESSION = 1
MAX_TEAMS_PER_SESSION = 6

# Name of the stored procedure that places athletes into sessions/teams
DEFAULT_DISTRIBUTION_RPC_NAME = "distribute_wave_players"
