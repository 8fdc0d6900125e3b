"""Aggregators and presenters over fetched income / expense rows."""
