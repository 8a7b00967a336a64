"""Scrape jobs on Scraper.is: submit, poll to completion, render the result."""

__version__ = "0.1.0"
