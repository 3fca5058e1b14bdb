"""
Observability module for the form flow engine.

Structured logging only: JSON in production, coloured text locally,
with the respondent session id attached to every record.
"""
