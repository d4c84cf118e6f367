from prometheus_client import Counter, Gauge


scheduler_ticks_total = Counter(
    "pillminder_scheduler_ticks_total",
    "Total scan ticks executed",
)

scheduler_due_matches_total = Counter(
    "pillminder_scheduler_due_matches_total",
    "Total stage due-time matches found by the scheduler",
    ["driver"],
)

reminders_dispatched_total = Counter(
    "pillminder_reminders_dispatched_total",
    "Total reminders handed to the notifier",
    ["driver"],
)

reminders_suppressed_total = Counter(
    "pillminder_reminders_suppressed_total",
    "Total reminders skipped because the stage was already completed today",
    ["driver"],
)

reminders_dispatch_failed_total = Counter(
    "pillminder_reminders_dispatch_failed_total",
    "Total reminders the notifier failed to deliver",
    ["driver"],
)

scheduler_owner_errors_total = Counter(
    "pillminder_scheduler_owner_errors_total",
    "Total per-owner processing errors (store or notifier failures)",
    ["driver"],
)

medication_confirmations_total = Counter(
    "pillminder_medication_confirmations_total",
    "Total medication confirmations recorded",
)

active_stage_timers = Gauge(
    "pillminder_active_stage_timers",
    "Number of per-stage timers currently registered",
)
