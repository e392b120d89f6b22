"""Spreadsheet ingestion, filtered search and export for company funding data."""
