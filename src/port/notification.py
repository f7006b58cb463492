"""Notification port: outbound delivery of one-time codes."""

from typing import Protocol

from domain.model.pending import CodePurpose


class NotificationPort(Protocol):
    def send_code(self, email: str, code: str, purpose: CodePurpose) -> None:
        """Deliver ``code`` to ``email``. Raise NotificationError on failure."""
        ...
