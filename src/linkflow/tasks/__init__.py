"""
Task subsystem.

Components:
- task_models.py: data structures (Task, RepeatRule, ActionTemplate, ActionBinding)
- schedule.py: due date / time / reminder normalization
- recurrence.py: next occurrence of a repeat rule
- actions.py: template resolution + ActionDispatcher
- executors.py: host adapters (browser URL opener, subprocess script runner)
- task_store.py: SQLite-backed storage for tasks and action templates
- task_scheduler.py: polling loop that fires due script actions and reminders
- task_api.py: command handlers used by the rest of the app
"""
