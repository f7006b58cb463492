"""Brevo transactional email adapter.

Implements NotificationPort by posting to the Brevo SMTP API.
API Documentation: https://developers.brevo.com/reference/sendtransacemail
"""

import logging
import os

import httpx
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)

from domain.model.errors import NotificationError
from domain.model.pending import CodePurpose

logger = logging.getLogger(__name__)

BREVO_API_URL = "https://api.brevo.com/v3/smtp/email"
API_TIMEOUT_SECONDS = 15.0

_SUBJECTS = {
    CodePurpose.SIGNUP: "Your signup verification code",
    CodePurpose.PASSWORD_RESET: "Your password reset code",
}
_HEADINGS = {
    CodePurpose.SIGNUP: "Confirm your email",
    CodePurpose.PASSWORD_RESET: "Reset your password",
}


def render_code_email(code: str, purpose: CodePurpose, expiry_minutes: int) -> tuple[str, str]:
    """Return (html, text) bodies for a code email."""
    heading = _HEADINGS[purpose]
    html = f"""
    <div style="font-family:Arial,sans-serif">
      <h2>{heading}</h2>
      <p>Your verification code is:</p>
      <div style="font-size:28px;font-weight:700;letter-spacing:4px">{code}</div>
      <p>This code expires in {expiry_minutes} minutes.</p>
      <p>If you did not request it, you can ignore this email.</p>
    </div>
    """
    text = f"{heading}. Your verification code is {code}. It expires in {expiry_minutes} minutes."
    return html, text


class BrevoEmailAdapter:
    """Sends one-time codes through Brevo."""

    def __init__(
        self,
        api_key: str,
        sender_email: str,
        sender_name: str = "College Resources",
        expiry_minutes: int = 10,
        client: httpx.Client | None = None,
    ):
        if not api_key:
            raise ValueError("BREVO_API_KEY is not set")
        if not sender_email:
            raise ValueError("BREVO_FROM is not set")
        self._api_key = api_key
        self._sender = {"email": sender_email, "name": sender_name}
        self._expiry_minutes = expiry_minutes
        self._client = client or httpx.Client(timeout=API_TIMEOUT_SECONDS)

    @classmethod
    def from_env(cls, expiry_minutes: int) -> "BrevoEmailAdapter":
        return cls(
            api_key=os.getenv("BREVO_API_KEY", ""),
            sender_email=os.getenv("BREVO_FROM") or os.getenv("EMAIL_FROM", ""),
            sender_name=os.getenv("BREVO_SENDER_NAME", "College Resources"),
            expiry_minutes=expiry_minutes,
        )

    def send_code(self, email: str, code: str, purpose: CodePurpose) -> None:
        html, text = render_code_email(code, purpose, self._expiry_minutes)
        payload = {
            "sender": self._sender,
            "to": [{"email": email}],
            "subject": _SUBJECTS[purpose],
            "htmlContent": html,
            "textContent": text,
        }

        try:
            response = _post_with_retry(self._client, payload, self._api_key)
        except httpx.RequestError as e:
            logger.warning(
                "Brevo request error",
                extra={"email": email, "purpose": purpose.value, "error_type": type(e).__name__},
            )
            raise NotificationError("Email service unreachable") from e

        if response.status_code >= 300:
            logger.error(
                "Brevo send failed",
                extra={"email": email, "purpose": purpose.value, "status_code": response.status_code},
            )
            raise NotificationError(f"Email send failed ({response.status_code})")

        logger.info("Verification code sent", extra={"email": email, "purpose": purpose.value})


# ── HTTP helpers ─────────────────────────────────────────────


@retry(
    retry=retry_if_exception_type((httpx.TimeoutException, httpx.ConnectError)),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=4),
    reraise=True,
)
def _post_with_retry(client: httpx.Client, payload: dict, api_key: str) -> httpx.Response:
    """POST to Brevo with automatic retry on transient transport failures."""
    return client.post(
        BREVO_API_URL,
        headers={
            "accept": "application/json",
            "api-key": api_key,
            "content-type": "application/json",
        },
        json=payload,
    )
