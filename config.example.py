# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit real secrets or broker credentials; keep them in .env (local, gitignored).

This file exists to make the repo self-documenting even without opening .env.
"""

ENV_VARS = {
    # App / logging
    "REMINDER_APP_NAME": "Service display name (default: reminder-scheduler).",
    "REMINDER_LOG_LEVEL": "Console logging level (default: INFO). The log file always gets DEBUG.",
    # Paths (gitignored)
    "REMINDER_DATA_DIR": "Local data directory for the task DB and logs (default: .local/reminder).",
    "REMINDER_TASKS_DB_PATH": "TaskStore SQLite path (default: <data_dir>/tasks.sqlite3).",
    # Kafka
    "REMINDER_KAFKA_BROKERS": "Comma/space separated bootstrap servers (default: localhost:9092).",
    "REMINDER_KAFKA_TASK_TOPIC": "Lifecycle event topic (default: expense-tasks).",
    "REMINDER_KAFKA_NOTIFICATION_TOPIC": "Notification request topic (default: email-notifications).",
    "REMINDER_KAFKA_GROUP_ID": "Consumer group for lifecycle events (default: reminder-scheduler).",
    "REMINDER_KAFKA_OFFSET_RESET": "Where a new consumer group starts: earliest|latest (default: earliest).",
    # Scanner / consumer
    "REMINDER_SCANNER_ENABLED": "Run the due-task scanner (true/false, default: true).",
    "REMINDER_CONSUMER_ENABLED": "Run the lifecycle event consumer (true/false, default: true).",
    "REMINDER_SCAN_INTERVAL_SECONDS": "Scanner period in seconds (default: 60, minimum 1).",
    "REMINDER_SCAN_BATCH_LIMIT": "Max due tasks fired per tick (default: 500).",
}
