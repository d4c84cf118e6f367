"""Reminder scheduling engine.

Decides when each stage of a medication plan is due, deduplicates against
the completion log and hands exactly one reminder per stage per day to a
notifier. Two lifecycle models are available: a once-a-minute scan over all
active plans (``scan_engine`` + ``ticker`` or the Celery beat ``tasks``) and
one persistent timer per stage (``timer_registry``).
"""
