"""
Background Jobs for the match scheduler.

This module contains the scheduled jobs:
- expiry_cron: proposal expiration (weekly) and match completion (half-hourly)
"""

from .expiry_cron import ScheduleDescriptor, job_schedules, run_expiry_job

__all__ = ["ScheduleDescriptor", "job_schedules", "run_expiry_job"]
