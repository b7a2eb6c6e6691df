"""Background jobs: scrape a game from every source, then generate its entry."""

from deckreports.jobs.generate import NoScrapedDataError, generate_game
from deckreports.jobs.scrape import scrape_game

__all__ = ["scrape_game", "generate_game", "NoScrapedDataError"]
