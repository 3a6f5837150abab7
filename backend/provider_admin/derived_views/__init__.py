"""Derived views: pure, read-only projections for UI consumption.

Statuses, table rows and the dashboard view state are computed from stored
records on demand. Nothing here is persisted or fetched.
"""
