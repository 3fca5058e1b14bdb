"""Authoring-time checks for form definitions."""
