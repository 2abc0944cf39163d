"""
Submission handler: turns a submitted form into a deferred SubmissionJob.

Runs inside the web request, so it never performs network I/O itself; the
outbound calls happen later in the run_submission_job task.
"""
import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

from submissions.services.config import BloomreachConfig, load_config
from submissions.services.field_mapping import apply_field_map
from submissions.services.jobs import SubmissionJob
from submissions.services.normalization import normalize_email, sanitize_text
from submissions.services.phone import extract_phone
from submissions.services.redaction import mask_email
from submissions.tasks import run_submission_job

logger = logging.getLogger(__name__)

Scheduler = Callable[[SubmissionJob, int], None]


@dataclass(frozen=True)
class FormSubmission:
    """Snapshot of one submitted form."""
    form_id: int
    posted_data: Optional[Mapping[str, Any]]
    form_title: str = ''
    source_url: str = ''
    user_agent: str = ''
    remote_addr: str = ''
    site: str = ''


def schedule_job(job: SubmissionJob, delay: int) -> None:
    """Hand the job to Celery, due after `delay` seconds."""
    run_submission_job.apply_async(args=[job.to_payload()], countdown=delay)


def build_job(submission: FormSubmission, config: BloomreachConfig) -> Optional[SubmissionJob]:
    """
    Build the job for a submission, or None when a precondition fails.

    Preconditions, in order (each a silent skip):
    1. Credentials configured
    2. A mapping exists for the form
    3. Submitted data is available
    4. The configured email field holds a valid email address
    """
    if not config.has_credentials:
        logger.debug("Submission skipped: Bloomreach credentials not configured")
        return None

    rule = config.find_form(submission.form_id)
    if rule is None:
        logger.debug(f"Submission skipped: no mapping for form {submission.form_id}")
        return None

    posted = submission.posted_data
    if not isinstance(posted, Mapping):
        logger.debug(f"Submission skipped: no submitted data for form {submission.form_id}")
        return None

    email = normalize_email(posted.get(rule.email_field, ''))
    if not email:
        logger.debug(f"Submission skipped: no valid email in '{rule.email_field}'")
        return None

    mapped = apply_field_map(posted, rule.field_map)

    event_properties = {
        'form_id': submission.form_id,
        'form_title': sanitize_text(submission.form_title),
        'source_url': sanitize_text(submission.source_url),
        'user_agent': sanitize_text(submission.user_agent),
        'ip': sanitize_text(submission.remote_addr),
        'site': sanitize_text(submission.site),
    }
    event_properties.update(mapped)

    customer_ids = {'email': email}
    phone = extract_phone(posted, rule.field_map)
    if phone:
        customer_ids['phone'] = phone

    return SubmissionJob(
        customer_ids=customer_ids,
        event_type=rule.event_type,
        event_properties=event_properties,
        profile_properties=dict(mapped),
        consent_key=rule.consent_key,
    )


def handle_submission(
    submission: FormSubmission,
    config: Optional[BloomreachConfig] = None,
    scheduler: Optional[Scheduler] = None,
) -> Optional[SubmissionJob]:
    """
    Build a job for the submission and schedule it for deferred delivery.

    Never raises: unexpected errors are logged and the submission dropped.

    Args:
        submission: The submitted form
        config: Configuration; loaded from the settings store when omitted
        scheduler: Callable(job, delay); defaults to the Celery task

    Returns:
        The scheduled job, or None when the submission was skipped
    """
    try:
        config = config or load_config()
        job = build_job(submission, config)
        if job is None:
            return None

        (scheduler or schedule_job)(job, config.submission_delay)
        logger.info(
            f"Job {job.request_id} scheduled in {config.submission_delay}s for "
            f"form {submission.form_id} ({mask_email(job.email)})"
        )
        return job
    except Exception as e:
        logger.error(f"Error handling submission for form {submission.form_id}: {e}", exc_info=True)
        return None
