# core/events.py — canonical event type definitions
# All cross-module communication should use these constants as event_type values.

# Maintenance events
MAINTENANCE_OVERDUE = "maintenance.overdue"                 # {requests: [...], count}
MAINTENANCE_UPCOMING = "maintenance.upcoming"               # {requests: [...], count, window_days}
MAINTENANCE_COMPLETED = "maintenance.completed"             # {request_id}

# Notifier event kinds (the short names callers pass to Notifier.notify)
NOTIFY_OVERDUE = "overdue"
NOTIFY_UPCOMING = "upcoming"
NOTIFY_COMPLETED = "completed"

NOTIFY_EVENT_TYPES = {
    NOTIFY_OVERDUE: MAINTENANCE_OVERDUE,
    NOTIFY_UPCOMING: MAINTENANCE_UPCOMING,
    NOTIFY_COMPLETED: MAINTENANCE_COMPLETED,
}
