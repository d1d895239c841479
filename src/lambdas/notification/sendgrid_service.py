"""SendGrid email service for the app store.

Handles transactional emails:
- Submission confirmation (sent to the submitting developer)
- Review decision notices (published / rejected)

Callers treat delivery as best-effort: a failed send is logged and the
business operation that triggered it still succeeds.
"""

import logging

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail

from src.lambdas.notification.templates import (
    build_status_update_html,
    build_status_update_subject,
    build_submission_confirmation_html,
    build_submission_confirmation_subject,
)
from src.lambdas.shared.logging_utils import get_safe_error_info, mask_email
from src.lambdas.shared.secrets import resolve_secret

logger = logging.getLogger(__name__)


class EmailServiceError(Exception):
    """Base exception for email service errors."""

    pass


class RateLimitExceededError(EmailServiceError):
    """Raised when email rate limit is exceeded."""

    def __init__(self, message: str, retry_after: int | None = None):
        super().__init__(message)
        self.retry_after = retry_after


class AuthenticationError(EmailServiceError):
    """Raised when SendGrid authentication fails."""

    pass


class EmailService:
    """SendGrid email service for transactional emails."""

    def __init__(
        self,
        from_email: str,
        api_key: str | None = None,
    ):
        """Initialize email service.

        Args:
            from_email: Sender address, e.g. "DevConsole <noreply@devconsole.app>"
            api_key: Optional API key (resolved from env/Secrets Manager if omitted)
        """
        self.from_email = from_email
        self._api_key = api_key
        self._client: SendGridAPIClient | None = None

    @property
    def api_key(self) -> str:
        """Get SendGrid API key from SENDGRID_API_KEY or SENDGRID_SECRET_ARN."""
        if self._api_key:
            return self._api_key
        api_key = resolve_secret("SENDGRID_API_KEY", "SENDGRID_SECRET_ARN", key_field="api_key")
        if not api_key:
            raise EmailServiceError("SendGrid API key not configured")
        self._api_key = api_key
        return api_key

    @property
    def client(self) -> SendGridAPIClient:
        """Get or create SendGrid client."""
        if self._client is None:
            self._client = SendGridAPIClient(self.api_key)
        return self._client

    def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        plain_content: str | None = None,
    ) -> bool:
        """Send a single email via SendGrid.

        Args:
            to_email: Recipient email address
            subject: Email subject line
            html_content: HTML email body
            plain_content: Plain text fallback (optional)

        Returns:
            True if email was accepted, False on an unexpected status

        Raises:
            RateLimitExceededError: If SendGrid rate limit hit
            AuthenticationError: If API key invalid
            EmailServiceError: On other errors
        """
        message = Mail(
            from_email=self.from_email,
            to_emails=to_email,
            subject=subject,
            html_content=html_content,
        )

        if plain_content:
            message.plain_text_content = plain_content

        try:
            response = self.client.send(message)
        except EmailServiceError:
            raise
        except Exception as e:
            status = getattr(e, "status_code", None)
            error_str = str(e)

            if status == 429 or "rate limit" in error_str.lower():
                logger.warning("SendGrid rate limit exceeded", extra=get_safe_error_info(e))
                raise RateLimitExceededError(
                    "SendGrid rate limit exceeded", retry_after=60
                ) from e

            if status in (401, 403):
                logger.error("SendGrid authentication error", extra=get_safe_error_info(e))
                raise AuthenticationError("Invalid SendGrid API key") from e

            logger.error("SendGrid error", extra=get_safe_error_info(e))
            raise EmailServiceError("Failed to send email") from e

        # 202 = Accepted (queued for sending)
        if 200 <= response.status_code < 300:
            logger.info(
                "Email sent",
                extra={
                    "to": mask_email(to_email),
                    "subject": subject[:50],
                    "status_code": response.status_code,
                },
            )
            return True

        logger.warning(
            "Unexpected status code from SendGrid",
            extra={"status_code": response.status_code},
        )
        return False

    def send_submission_confirmation(
        self,
        to_email: str,
        app_name: str,
        version_name: str,
        submitted_at: str,
    ) -> bool:
        """Send the "submission received" email to a developer."""
        return self.send_email(
            to_email=to_email,
            subject=build_submission_confirmation_subject(app_name),
            html_content=build_submission_confirmation_html(app_name, version_name, submitted_at),
        )

    def send_status_update(
        self,
        to_email: str,
        app_name: str,
        status: str,
        reviewed_at: str,
        review_notes: str | None = None,
    ) -> bool:
        """Send a review decision (published or rejected) to a developer."""
        return self.send_email(
            to_email=to_email,
            subject=build_status_update_subject(app_name, status),
            html_content=build_status_update_html(app_name, status, reviewed_at, review_notes),
        )
