"""
Celery tasks for deferred submission delivery.
"""
import logging
from typing import Optional

from celery import shared_task

from submissions.services.config import load_config
from submissions.services.job_runner import JobOutcome, JobRunner
from submissions.services.jobs import SubmissionJob

logger = logging.getLogger(__name__)


@shared_task(ignore_result=True)
def run_submission_job(payload: dict) -> Optional[dict]:
    """
    Deliver one submission job to Bloomreach.

    Workflow:
    1. Rebuild the job from its queued payload
    2. Load the configuration once for the whole run
    3. Profile update, main event, consent check-and-push

    There is no retry: failed calls are logged and abandoned. Nothing is
    raised back to Celery.

    Args:
        payload: SubmissionJob.to_payload() output

    Returns:
        Summary of the run, or None when the job could not run
    """
    try:
        job = SubmissionJob.from_payload(payload or {})
    except (TypeError, ValueError) as e:
        logger.error(f"Discarding malformed job payload: {e}")
        return None

    try:
        config = load_config()
        logger.info(f"Running job {job.request_id} ({job.event_type})")
        outcome = JobRunner(config).run(job)
        return summarize(outcome)
    except Exception as e:
        logger.error(f"Job {job.request_id} failed: {e}", exc_info=True)
        return None


def summarize(outcome: JobOutcome) -> dict:
    """Compact, log-friendly view of a JobOutcome."""
    return {
        'request_id': outcome.request_id,
        'aborted': outcome.aborted,
        'profile_updated': outcome.profile.accepted if outcome.profile else None,
        'event_tracked': outcome.event.accepted if outcome.event else None,
        'consent_cache_hit': outcome.consent_cache_hit,
        'had_consent': outcome.had_consent,
        'consent_granted': outcome.consent_grant.accepted if outcome.consent_grant else None,
    }
