"""
The deferred unit of work built for one accepted form submission.
"""
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping


@dataclass(frozen=True)
class SubmissionJob:
    """
    Immutable job record passed through the task queue as JSON.

    customer_ids always carries `email`; `phone` only when one was found.
    """
    customer_ids: Dict[str, str]
    event_type: str
    event_properties: Dict[str, Any] = field(default_factory=dict)
    profile_properties: Dict[str, Any] = field(default_factory=dict)
    consent_key: str = ''
    created_at: float = field(default_factory=time.time)
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @property
    def email(self) -> str:
        return self.customer_ids.get('email', '')

    def to_payload(self) -> Dict[str, Any]:
        return {
            'customer_ids': dict(self.customer_ids),
            'event_type': self.event_type,
            'event_properties': dict(self.event_properties),
            'profile_properties': dict(self.profile_properties),
            'consent_key': self.consent_key,
            'created_at': self.created_at,
            'request_id': self.request_id,
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> 'SubmissionJob':
        """
        Rebuild a job from its queued payload.

        Raises:
            ValueError: If the payload is not a mapping or has no customer
                email or event type
        """
        if not isinstance(payload, Mapping):
            raise ValueError(f"Job payload must be a mapping, got {type(payload).__name__}")
        customer_ids = dict(payload.get('customer_ids') or {})
        if not customer_ids.get('email'):
            raise ValueError("Job payload has no customer email")
        if not payload.get('event_type'):
            raise ValueError("Job payload has no event_type")

        return cls(
            customer_ids=customer_ids,
            event_type=str(payload['event_type']),
            event_properties=dict(payload.get('event_properties') or {}),
            profile_properties=dict(payload.get('profile_properties') or {}),
            consent_key=str(payload.get('consent_key') or ''),
            created_at=float(payload.get('created_at') or time.time()),
            request_id=str(payload.get('request_id') or uuid.uuid4()),
        )
