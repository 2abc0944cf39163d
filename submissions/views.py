"""
API views for Form Gateway Service.
"""
import hmac
import logging
import uuid
from django.conf import settings
from django.core.exceptions import ValidationError
from django.utils.decorators import method_decorator
from django.views.decorators.csrf import csrf_exempt
from rest_framework import status
from rest_framework.exceptions import ParseError
from rest_framework.permissions import IsAdminUser
from rest_framework.response import Response
from rest_framework.views import APIView

from submissions.services.config import describe_config, load_config, save_settings
from submissions.services.redaction import mask_secret
from submissions.services.submission import FormSubmission, handle_submission

logger = logging.getLogger(__name__)


def _client_ip(request) -> str:
    forwarded = request.META.get('HTTP_X_FORWARDED_FOR', '')
    if forwarded:
        return forwarded.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR', '')


def _positive_int(value):
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None


@method_decorator(csrf_exempt, name='dispatch')
class FormSubmissionWebhookView(APIView):
    """
    Webhook endpoint notified when a contact form is submitted.

    POST /webhooks/forms/
    - Accepts JSON payload {form_id, form_title, posted_data, source_url}
    - Builds the submission job and schedules it (no outbound calls here)
    - Returns 200 OK with status 'accepted' or 'ignored'
    """

    authentication_classes = []
    permission_classes = []

    def post(self, request):
        """
        Handle a form submission notification.

        Returns:
            200 OK: Submission accepted (job scheduled) or ignored
            400 Bad Request: Malformed JSON or missing form_id
            401 Unauthorized: Shared secret missing or wrong
        """
        # Generate correlation ID for request tracing
        correlation_id = str(uuid.uuid4())

        secret = getattr(settings, 'WEBHOOK_SHARED_SECRET', None)
        if secret:
            provided = request.META.get('HTTP_X_WEBHOOK_SECRET', '')
            if not hmac.compare_digest(provided.encode('utf-8'), secret.encode('utf-8')):
                logger.warning(f"Webhook secret mismatch, correlation_id={correlation_id}")
                return Response(
                    {
                        'error': 'Unauthorized',
                        'correlation_id': correlation_id
                    },
                    status=status.HTTP_401_UNAUTHORIZED
                )

        try:
            payload = request.data

            form_id = _positive_int(payload.get('form_id')) if isinstance(payload, dict) else None
            if form_id is None:
                logger.warning(f"Submission without valid form_id, correlation_id={correlation_id}")
                return Response(
                    {
                        'error': 'Missing or invalid form_id',
                        'correlation_id': correlation_id
                    },
                    status=status.HTTP_400_BAD_REQUEST
                )

            submission = FormSubmission(
                form_id=form_id,
                posted_data=payload.get('posted_data'),
                form_title=payload.get('form_title') or '',
                source_url=payload.get('source_url') or request.META.get('HTTP_REFERER', ''),
                user_agent=request.META.get('HTTP_USER_AGENT', ''),
                remote_addr=_client_ip(request),
                site=getattr(settings, 'BLOOMREACH_SITE_URL', '') or request.build_absolute_uri('/'),
            )

            job = handle_submission(submission)

            if job is None:
                logger.info(f"Submission for form {form_id} ignored, correlation_id={correlation_id}")
                return Response(
                    {
                        'status': 'ignored',
                        'correlation_id': correlation_id
                    },
                    status=status.HTTP_200_OK
                )

            logger.info(
                f"Submission for form {form_id} accepted as job {job.request_id}, "
                f"correlation_id={correlation_id}"
            )
            return Response(
                {
                    'status': 'accepted',
                    'request_id': job.request_id,
                    'correlation_id': correlation_id
                },
                status=status.HTTP_200_OK
            )

        except ParseError as e:
            logger.warning(
                f"Malformed JSON payload: {e}, "
                f"correlation_id={correlation_id}"
            )
            return Response(
                {
                    'error': 'Malformed JSON',
                    'correlation_id': correlation_id
                },
                status=status.HTTP_400_BAD_REQUEST
            )


class IntegrationSettingsView(APIView):
    """
    Administrator view of the Bloomreach settings store.

    GET /webhooks/settings/  - current configuration (token masked)
    PUT /webhooks/settings/  - sanitize, save and return the configuration
    """

    permission_classes = [IsAdminUser]

    def get(self, request):
        return Response(describe_config(load_config()), status=status.HTTP_200_OK)

    def put(self, request):
        try:
            data = dict(request.data)
        except (ParseError, TypeError, ValueError):
            return Response({'error': 'Malformed JSON'}, status=status.HTTP_400_BAD_REQUEST)

        # A masked token sent back unchanged keeps the stored one
        current = load_config()
        if current.token and data.get('token') == mask_secret(current.token):
            data['token'] = current.token

        try:
            result = save_settings(data)
        except ValidationError as e:
            return Response({'error': e.messages}, status=status.HTTP_400_BAD_REQUEST)

        body = describe_config(load_config())
        body['warnings'] = result.warnings
        return Response(body, status=status.HTTP_200_OK)
