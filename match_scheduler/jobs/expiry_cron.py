"""
Expiry Cron Jobs: scheduled state transitions for proposals and matches.

This module is the entry point the external scheduler invokes (Cloud
Scheduler, cron, or similar). It builds the configured store, runs one
cycle, logs the outcome, alerts on failure and re-raises so the scheduler's
own retry policy applies.

Schedules (UTC):
- proposals: 15 0 * * 1   (Mondays 00:15, after the Sunday deadline)
- matches:   1,31 * * * * (one minute after each timeslot boundary)
"""

import asyncio
import logging
import sys
import traceback
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import httpx

from ..core.config import Settings, get_settings
from ..services.expiration_scheduler import CycleResult, ExpirationScheduler, ExpiryConfig
from ..services.match_completion import CompletionConfig, MatchCompletionScheduler
from ..stores import BatchWriteFailure, DocumentStore, build_store


logger = logging.getLogger(__name__)

JOB_PROPOSALS = "proposals"
JOB_MATCHES = "matches"


# =============================================================================
# SCHEDULES
# =============================================================================


@dataclass(frozen=True)
class ScheduleDescriptor:
    """Cadence to register with the external scheduler."""
    job: str
    cron: str
    timezone: str = "UTC"


def job_schedules(settings: Settings | None = None) -> dict[str, ScheduleDescriptor]:
    settings = settings or get_settings()
    return {
        JOB_PROPOSALS: ScheduleDescriptor(JOB_PROPOSALS, settings.expire_proposals_cron, settings.schedule_timezone),
        JOB_MATCHES: ScheduleDescriptor(JOB_MATCHES, settings.complete_matches_cron, settings.schedule_timezone),
    }


# =============================================================================
# ALERTING
# =============================================================================


async def send_alert(
    title: str,
    message: str,
    severity: str = "error",
    details: dict | None = None,
    settings: Settings | None = None,
) -> None:
    """
    Send an alert about a job run.

    Supports multiple channels:
    - Slack webhook
    - Generic webhook (for PagerDuty, Opsgenie, etc.)
    - Logs (always)
    """
    settings = settings or get_settings()

    # Always log the alert
    log_message = f"[CRON ALERT] {title}: {message}"
    if details:
        log_message += f" | Details: {details}"

    if severity == "critical":
        logger.critical(log_message)
    elif severity == "warning":
        logger.warning(log_message)
    else:
        logger.error(log_message)

    if settings.slack_alerts_webhook_url:
        try:
            await _send_slack_alert(settings.slack_alerts_webhook_url, title, message, severity, details, settings)
        except httpx.HTTPError as e:
            logger.error(f"Failed to send Slack alert: {e}")

    if settings.alert_webhook_url:
        try:
            await _send_webhook_alert(settings.alert_webhook_url, title, message, severity, details, settings)
        except httpx.HTTPError as e:
            logger.error(f"Failed to send webhook alert: {e}")


async def _send_slack_alert(
    webhook_url: str,
    title: str,
    message: str,
    severity: str,
    details: dict | None,
    settings: Settings,
) -> None:
    """Send alert to Slack."""
    color = "#dc2626" if severity == "critical" else "#f59e0b"  # Red or orange

    blocks = [
        {
            "type": "header",
            "text": {"type": "plain_text", "text": title, "emoji": True},
        },
        {
            "type": "section",
            "text": {"type": "mrkdwn", "text": message},
        },
    ]

    if details:
        details_text = "\n".join([f"• *{k}*: {v}" for k, v in details.items()])
        blocks.append({
            "type": "section",
            "text": {"type": "mrkdwn", "text": details_text},
        })

    blocks.append({
        "type": "context",
        "elements": [
            {"type": "mrkdwn", "text": f"Severity: *{severity.upper()}* | Time: {datetime.now(timezone.utc).isoformat()}"},
        ],
    })

    async with httpx.AsyncClient() as client:
        response = await client.post(
            webhook_url,
            json={"attachments": [{"color": color, "blocks": blocks}]},
            timeout=settings.alert_timeout_seconds,
        )
        response.raise_for_status()


async def _send_webhook_alert(
    webhook_url: str,
    title: str,
    message: str,
    severity: str,
    details: dict | None,
    settings: Settings,
) -> None:
    """Send alert to generic webhook endpoint."""
    payload = {
        "title": title,
        "message": message,
        "severity": severity,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "source": settings.app_name,
        "details": details or {},
    }

    async with httpx.AsyncClient() as client:
        response = await client.post(webhook_url, json=payload, timeout=settings.alert_timeout_seconds)
        response.raise_for_status()


# =============================================================================
# JOB RUNNER
# =============================================================================


async def _run_cycle(
    job: str,
    store: DocumentStore,
    settings: Settings,
    now: datetime | None,
    dry_run: bool,
) -> CycleResult:
    if job == JOB_PROPOSALS:
        scheduler = ExpirationScheduler(
            store,
            ExpiryConfig(
                collection=settings.proposals_collection,
                batch_size=settings.batch_size,
                concurrent_batches=settings.concurrent_batches,
                staleness_threshold=timedelta(days=settings.staleness_threshold_days),
            ),
        )
        return await scheduler.run_expiration_cycle(now, dry_run=dry_run)

    scheduler = MatchCompletionScheduler(
        store,
        CompletionConfig(
            collection=settings.scheduled_matches_collection,
            batch_size=settings.batch_size,
            concurrent_batches=settings.concurrent_batches,
        ),
    )
    return await scheduler.run_completion_cycle(now, dry_run=dry_run)


async def run_expiry_job(
    job: str = JOB_PROPOSALS,
    settings: Settings | None = None,
    store: DocumentStore | None = None,
    now: datetime | None = None,
    dry_run: bool = False,
) -> dict[str, Any]:
    """
    Main entry point for one scheduled run.

    Args:
        job: "proposals" or "matches"
        settings: Defaults to environment settings
        store: Defaults to the configured backend (closed after the run)
        now: Evaluation timestamp; defaults to the current UTC time
        dry_run: Report what would change without writing

    Returns:
        Job result summary

    Raises:
        QueryFailure, BatchWriteFailure: after alerting
    """
    if job not in (JOB_PROPOSALS, JOB_MATCHES):
        raise ValueError(f"Unknown job {job!r}")

    settings = settings or get_settings()
    owns_store = store is None
    if store is None:
        store = build_store(settings)

    start_time = datetime.now(timezone.utc)
    logger.info(f"Starting {job} job at {start_time.isoformat()}")

    results: dict[str, Any] = {
        "job": job,
        "started_at": start_time.isoformat(),
        "completed_at": None,
    }

    try:
        cycle = await _run_cycle(job, store, settings, now, dry_run)
    except Exception as e:
        details = {
            "error": str(e),
            "traceback": traceback.format_exc()[-500:],  # Last 500 chars
            "started_at": results["started_at"],
        }
        if isinstance(e, BatchWriteFailure):
            details["committed_before_failure"] = e.committed_count
            details["failed_documents"] = len(e.failed_ids)

        # CRITICAL: Alert on job failure
        await send_alert(
            title=f"Scheduled {job} job failed",
            message=f"The {job} job failed; uncommitted documents will be retried on the next run.",
            severity="critical",
            details=details,
            settings=settings,
        )
        raise
    finally:
        if owns_store:
            await store.close()

    end_time = datetime.now(timezone.utc)
    results.update(cycle.to_dict())
    results["completed_at"] = end_time.isoformat()
    results["duration_seconds"] = (end_time - start_time).total_seconds()

    logger.info(
        f"{job} job completed in {results['duration_seconds']:.2f}s: "
        f"{cycle.found_count} found, {cycle.updated_count} updated"
    )

    if cycle.stale:
        await send_alert(
            title="Overdue proposals exceeded staleness threshold",
            message=(
                f"The oldest overdue proposal expired at {cycle.oldest_expires_at.isoformat()}, "
                f"more than {settings.staleness_threshold_days} day(s) before this run. "
                f"A scheduled run was probably missed."
            ),
            severity="warning",
            details={"found_count": cycle.found_count, "evaluated_at": cycle.evaluated_at.isoformat()},
            settings=settings,
        )

    return results


# =============================================================================
# CLI ENTRY POINT
# =============================================================================


def main(argv: list[str] | None = None) -> int:
    """CLI entry point for the scheduled jobs."""
    import argparse

    parser = argparse.ArgumentParser(description="Run a scheduled match-scheduler job")
    parser.add_argument(
        "--job",
        choices=[JOB_PROPOSALS, JOB_MATCHES],
        default=JOB_PROPOSALS,
        help="Which state transition to run",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Log what would be done without making changes",
    )
    parser.add_argument(
        "--print-schedule",
        action="store_true",
        help="Print the cron cadence for the job and exit",
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if args.print_schedule:
        schedule = job_schedules()[args.job]
        print(f"{schedule.job}: {schedule.cron} ({schedule.timezone})")
        return 0

    try:
        results = asyncio.run(run_expiry_job(job=args.job, dry_run=args.dry_run))
        print(f"Job completed: {results}")
    except Exception as e:
        print(f"Job failed: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
