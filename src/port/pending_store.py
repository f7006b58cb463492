"""Port definition for the store of in-flight OTP verifications."""

from typing import Protocol

from domain.model.pending import PendingT


class PendingStore(Protocol[PendingT]):
    """Expiring map from email to one pending record.

    Every method is atomic with respect to the others for the same email.
    Expired records behave as absent.
    """

    def put(self, record: PendingT) -> bool:
        """Store (or overwrite) the record for record.email. Return True on success."""
        ...

    def get(self, email: str) -> PendingT | None: ...

    def consume(self, email: str, otp: str) -> PendingT | None:
        """Remove and return the record if ``otp`` matches, else None."""
        ...

    def replace(self, previous: PendingT, record: PendingT) -> bool:
        """Swap in ``record`` only while the stored one is still ``previous``."""
        ...

    def discard(self, record: PendingT) -> bool:
        """Remove the stored record only if it is still this issuance."""
        ...

    def restore(self, record: PendingT) -> bool:
        """Put a consumed record back unless a newer one exists or it expired."""
        ...

    def ping(self) -> bool: ...
