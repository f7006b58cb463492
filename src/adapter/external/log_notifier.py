"""Development notification adapter: writes codes to the log instead of email.

Selected when no email provider is configured, so the signup flow can be
exercised locally.
"""

import logging

from domain.model.pending import CodePurpose

logger = logging.getLogger(__name__)


class LogNotificationAdapter:
    def send_code(self, email: str, code: str, purpose: CodePurpose) -> None:
        logger.warning(
            "Email provider not configured; verification code written to log",
            extra={"email": email, "purpose": purpose.value, "verification_code": code},
        )
