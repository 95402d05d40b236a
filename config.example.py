# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
This file exists to make the repo self-documenting even without opening .env.example.
"""

ENV_VARS = {
    # App / logging
    "LINKFLOW_APP_NAME": "App display name (default: linkflow).",
    "LINKFLOW_LOG_LEVEL": "Console logging level (default: INFO). The log file always gets DEBUG.",
    # Connectors
    "LINKFLOW_CONSOLE_ENABLED": "Enable the console REPL (true/false). Off => poller only.",
    # Paths (gitignored)
    "LINKFLOW_DATA_DIR": "Local data directory (default: .local/linkflow).",
    "LINKFLOW_TASKS_DB_PATH": "TaskStore SQLite path (default: <data_dir>/tasks.sqlite3).",
    # Due-action poller
    "LINKFLOW_POLL_INTERVAL_SECONDS": "Seconds between poller passes (default: 30).",
    "LINKFLOW_AUTO_ACTIONS_ENABLED": "Launch script actions automatically when due (default: true).",
    "LINKFLOW_REMINDERS_ENABLED": "Show reminders in the console (default: true).",
    "LINKFLOW_REMINDER_GRACE_SECONDS": "Skip reminders older than this many seconds (default: 600).",
}
