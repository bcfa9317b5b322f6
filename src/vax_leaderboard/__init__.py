"""County vaccination leaderboard: fetch, rank and report uptake by county."""

__version__ = "0.1.0"
