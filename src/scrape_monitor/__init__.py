"""Scrape Monitor - dashboard state for bank scraping refreshes."""

__version__ = "1.0.0"
