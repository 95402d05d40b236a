"""linkflow: a personal task manager with schedules, recurrence and bound actions."""

__version__ = "0.1.0"
