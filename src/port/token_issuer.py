"""Port for signed bearer tokens."""

from datetime import timedelta
from typing import Any, Protocol


class TokenIssuer(Protocol):
    """Creates and checks signed, self-contained tokens.

    issue() embeds ``subject`` as the ``sub`` claim plus any extra claims.
    decode() returns the claim set, or None if the signature, expiry or
    format is invalid.
    """

    def issue(
        self,
        subject: str,
        claims: dict[str, Any] | None = None,
        expires_in: timedelta | None = None,
    ) -> str: ...

    def decode(self, token: str) -> dict[str, Any] | None: ...
