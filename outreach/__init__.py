"""Outreach Tracker - prospect contacts, activities, tasks and projects."""

__version__ = "0.3.0"
