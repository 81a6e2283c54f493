from gigs.models.job import Job
from gigs.models.scraper_run import ScraperRun

__all__ = ["Job", "ScraperRun"]
