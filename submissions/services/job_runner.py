"""
Deferred job runner: performs the outbound Bloomreach calls for one job.

Steps fail soft: a failed profile update does not stop the event, and a
failed event does not stop consent handling. There is no retry here.
"""
import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from submissions.services.bloomreach_client import AttributeReadResult, BloomreachClient, WriteResult
from submissions.services.config import BloomreachConfig
from submissions.services.consent_cache import ConsentCache
from submissions.services.jobs import SubmissionJob
from submissions.services.redaction import mask_email

logger = logging.getLogger(__name__)


def consent_event(consent_key: str) -> Tuple[str, Dict[str, str]]:
    return 'consent', {
        'action': 'accept',
        'category': consent_key,
        'valid_until': 'unlimited',
        'source': 'public_api',
    }


def legacy_consent_granted_event(consent_key: str) -> Tuple[str, Dict[str, str]]:
    return 'consent_granted', {
        'consent_key': consent_key,
        'method': 'contact_form',
        'source': 'website',
    }


CONSENT_EVENT_BUILDERS: Dict[str, Callable[[str], Tuple[str, Dict[str, str]]]] = {
    'consent': consent_event,
    'consent_granted': legacy_consent_granted_event,
}


@dataclass
class JobOutcome:
    """What happened while running a job."""
    request_id: str
    aborted: bool = False
    profile: Optional[WriteResult] = None
    event: Optional[WriteResult] = None
    consent_cache_hit: Optional[bool] = None
    consent_lookup: Optional[AttributeReadResult] = None
    had_consent: Optional[bool] = None
    consent_grant: Optional[WriteResult] = None


class JobRunner:
    """Runs one SubmissionJob against Bloomreach."""

    def __init__(self, config: BloomreachConfig, client: Optional[BloomreachClient] = None,
                 cache: Optional[ConsentCache] = None):
        self.config = config
        self.client = client or BloomreachClient(config)
        self.cache = cache or ConsentCache()

    def run(self, job: SubmissionJob) -> JobOutcome:
        """
        Run the job's outbound calls.

        Aborts first when credentials are missing (settings may have changed
        since enqueue), then:
        1. Update the customer profile with the mapped fields
        2. Track the main event
        3. Resolve consent and push a consent grant when it is missing

        Args:
            job: The job to run

        Returns:
            JobOutcome describing every step
        """
        outcome = JobOutcome(request_id=job.request_id)

        # Credential guard
        if not self.config.has_credentials:
            logger.debug(f"Job {job.request_id}: credentials missing, aborting")
            outcome.aborted = True
            return outcome

        # 1. Profile update
        if job.profile_properties:
            outcome.profile = self.client.update_profile(job.customer_ids, job.profile_properties)
            if not outcome.profile.accepted:
                logger.warning(f"Job {job.request_id}: profile update failed")

        # 2. Main event (email is the only identifier for events)
        outcome.event = self.client.track_event(
            {'email': job.email},
            job.event_type,
            job.event_properties,
            job.created_at,
        )
        if outcome.event.accepted:
            logger.info(f"Job {job.request_id}: event '{job.event_type}' tracked")
        else:
            logger.warning(f"Job {job.request_id}: event '{job.event_type}' failed")

        # 3. Consent
        if job.consent_key:
            self._handle_consent(job, outcome)

        return outcome

    def resolve_consent(self, email: str, consent_key: str, outcome: Optional[JobOutcome] = None) -> bool:
        """
        Return whether the customer already has consent for consent_key.

        Answers from the cache when possible, otherwise reads the customer's
        consent attribute once. The resolved value is always cached.
        """
        lookup = self.cache.get(email, consent_key)
        if lookup.hit:
            has_consent = lookup.value
        else:
            result = self.client.read_consent(email, consent_key)
            has_consent = result.has_consent
            if outcome is not None:
                outcome.consent_lookup = result

        if outcome is not None:
            outcome.consent_cache_hit = lookup.hit

        self.cache.set(email, consent_key, has_consent, self.config.consent_cache_minutes)
        return has_consent

    def _handle_consent(self, job: SubmissionJob, outcome: JobOutcome) -> None:
        email, consent_key = job.email, job.consent_key
        outcome.had_consent = self.resolve_consent(email, consent_key, outcome)

        if outcome.had_consent:
            logger.debug(f"Job {job.request_id}: {mask_email(email)} already has consent '{consent_key}'")
            return

        builder = CONSENT_EVENT_BUILDERS.get(self.config.consent_event_schema, consent_event)
        event_type, properties = builder(consent_key)
        outcome.consent_grant = self.client.track_event({'email': email}, event_type, properties, time.time())

        if outcome.consent_grant.accepted:
            self.cache.set(email, consent_key, True, self.config.consent_cache_minutes)
            logger.info(f"Job {job.request_id}: consent '{consent_key}' granted")
        else:
            logger.warning(f"Job {job.request_id}: consent '{consent_key}' push failed")
