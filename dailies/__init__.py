"""Dailies — recurring task resets with a live notification feed."""
