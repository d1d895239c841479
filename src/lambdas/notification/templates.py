"""HTML bodies and subject lines for developer notification emails.

All user-supplied values (app names, version names, review notes) are
entity-encoded before interpolation.
"""

from datetime import datetime

from src.lambdas.shared.utils.sanitize import sanitize_html

NO_NOTES_TEXT = "No specific notes provided. Please contact support for more details."

_FOOTER = """
            <p style="color: #666; font-size: 12px; margin-top: 30px;">
                DevConsole Team<br>
                This is an automated email. Please do not reply.
            </p>"""


def format_email_timestamp(value: str) -> str:
    """Render an ISO 8601 timestamp for humans, or the raw value if unparsable."""
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return sanitize_html(value)
    return parsed.strftime("%B %d, %Y %H:%M UTC")


def build_submission_confirmation_subject(app_name: str) -> str:
    return f"App Submission Received: {app_name}"


def build_submission_confirmation_html(app_name: str, version_name: str, submitted_at: str) -> str:
    """Build HTML for the submission confirmation email."""
    return f"""
        <!DOCTYPE html>
        <html>
        <body style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
            <h1 style="color: #333;">Submission Confirmation</h1>
            <p>Hi Developer,</p>
            <p>We've successfully received your app submission:</p>
            <div style="background: #f5f5f5; padding: 20px; border-radius: 8px; margin: 20px 0;">
                <p><strong>App Name:</strong> {sanitize_html(app_name)}</p>
                <p><strong>Version:</strong> {sanitize_html(version_name)}</p>
                <p><strong>Submitted:</strong> {format_email_timestamp(submitted_at)}</p>
            </div>
            <p>Your app is now in the review queue. You'll receive an email once the review is complete.</p>
            <p><strong>What happens next?</strong></p>
            <ul>
                <li>Our team will review your app for compliance with our guidelines</li>
                <li>Review typically takes 1-3 business days</li>
                <li>You'll receive an email with the review decision</li>
            </ul>
            <p>Thank you for submitting your app!</p>{_FOOTER}
        </body>
        </html>
        """


def build_status_update_subject(app_name: str, status: str) -> str:
    if status == "published":
        return f'✅ Your App "{app_name}" Has Been Approved!'
    return f'⚠️ App Review Update: "{app_name}"'


def build_status_update_html(
    app_name: str,
    status: str,
    reviewed_at: str,
    review_notes: str | None = None,
) -> str:
    """Build HTML for the review decision email."""
    approved = status == "published"
    accent = "#22c55e" if approved else "#ef4444"
    background = "#f0fdf4" if approved else "#fef2f2"
    heading_color = "#15803d" if approved else "#dc2626"

    if approved:
        heading = "Congratulations!"
        status_label = "APPROVED"
        next_steps = """
            <p><strong>Your app is now live!</strong></p>
            <p>Users can now discover and download your app from the store. Here's what you can do next:</p>
            <ul>
                <li>Monitor your app's performance in the dashboard</li>
                <li>Respond to user reviews and feedback</li>
                <li>Prepare updates with new features</li>
            </ul>"""
    else:
        heading = "Review Update"
        status_label = "REQUIRES ATTENTION"
        notes = sanitize_html(review_notes) if review_notes else NO_NOTES_TEXT
        next_steps = f"""
            <p><strong>Review Feedback:</strong></p>
            <div style="background: #fff; padding: 15px; border-radius: 4px; border: 1px solid #e5e7eb;">
                {notes}
            </div>
            <p><strong>What to do next:</strong></p>
            <ul>
                <li>Review the feedback carefully</li>
                <li>Make necessary changes to your app</li>
                <li>Resubmit your app when ready</li>
            </ul>
            <p>If you have questions about the review, please reach out to our support team.</p>"""

    return f"""
        <!DOCTYPE html>
        <html>
        <body style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
            <h1 style="color: {accent};">{heading}</h1>
            <p>Hi Developer,</p>
            <p>Your app <strong>{sanitize_html(app_name)}</strong> has been reviewed.</p>
            <div style="background: {background}; border-left: 4px solid {accent}; padding: 20px; margin: 20px 0;">
                <h3 style="margin-top: 0; color: {heading_color};">Status: {status_label}</h3>
                <p><strong>Reviewed:</strong> {format_email_timestamp(reviewed_at)}</p>
            </div>{next_steps}
            <p>Thank you for being part of our developer community!</p>{_FOOTER}
        </body>
        </html>
        """
