"""Game domain services: rules, bot, sessions, reconnection and stats.

This package holds the match logic imported by the Socket.IO handlers,
keeping transport concerns separated from core game mechanics. Everything
except ``stats`` runs without a Flask application.
"""
