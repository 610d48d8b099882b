"""
taskcal - one calendar over Google Tasks and Google Calendar.

Packages:
- schedule: models, date/time normalization, presets, merging, commands
- panel: the interactive panel state machine and its messages
- integrations: the remote store facade and its implementations
- observability: logging setup and panel correlation ids
"""

__version__ = "0.4.0"
