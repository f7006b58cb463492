"""Test-session environment: a signing key so api.security can be imported."""

import os

os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-not-for-production")
