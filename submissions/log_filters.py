"""
Logging filters for the submissions app, wired up in settings.LOGGING.
"""
import logging

from django.conf import settings

from submissions.services.redaction import redact_text

_traceback_formatter = logging.Formatter()


class VerboseDiagnosticsFilter(logging.Filter):
    """Drops every record unless BLOOMREACH_VERBOSE_LOGGING is enabled."""

    def filter(self, record: logging.LogRecord) -> bool:
        return bool(getattr(settings, 'BLOOMREACH_VERBOSE_LOGGING', False))


class RedactingFilter(logging.Filter):
    """
    Masks emails and credentials in the rendered message.

    Tracebacks and stack info are rendered here too, so formatters emit the
    redacted text instead of formatting exc_info themselves.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            message = str(record.msg)
        record.msg = redact_text(message)
        record.args = None

        if record.exc_info and not record.exc_text:
            record.exc_text = _traceback_formatter.formatException(record.exc_info)
        if record.exc_text:
            record.exc_text = redact_text(record.exc_text)
        if record.stack_info:
            record.stack_info = redact_text(record.stack_info)
        return True
