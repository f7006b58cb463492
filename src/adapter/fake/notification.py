"""In-memory implementation of NotificationPort for testing."""

from domain.model.errors import NotificationError
from domain.model.pending import CodePurpose


class FakeNotificationAdapter:
    def __init__(self, fail: bool = False):
        self.sent: list[tuple[str, str, CodePurpose]] = []
        self.fail = fail

    def send_code(self, email: str, code: str, purpose: CodePurpose) -> None:
        if self.fail:
            raise NotificationError("delivery failed")
        self.sent.append((email, code, purpose))

    def last_code(self, email: str) -> str | None:
        for to, code, _ in reversed(self.sent):
            if to == email:
                return code
        return None
