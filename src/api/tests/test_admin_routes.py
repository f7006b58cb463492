"""Tests for administrator routes (/api/admin/*)."""

import unittest
from datetime import datetime, timedelta, timezone

from fastapi.testclient import TestClient

from api.main import app
from api.dependencies import get_user_repo
from api.security import get_token_issuer
from adapter.fake.user_repository import FakeUserRepository
from domain.model.user import Role, User


def _bearer(user: User) -> dict:
    token = get_token_issuer().issue(user.email, claims={"role": user.role.value, "typ": "access"})
    return {"Authorization": f"Bearer {token}"}


class TestListUsersRoute(unittest.TestCase):

    def setUp(self):
        self.client = TestClient(app)
        self.repo = FakeUserRepository()
        app.dependency_overrides[get_user_repo] = lambda: self.repo

        base = datetime(2026, 1, 1, tzinfo=timezone.utc)
        self.admin = User.create('Dean', 'dean@college.edu', 'hash', role=Role.ADMIN)
        self.admin.created_at = base
        self.student = User.create('Alice', 'alice@x.com', 'hash')
        self.student.created_at = base + timedelta(days=1)
        self.repo.save(self.admin)
        self.repo.save(self.student)

    def tearDown(self):
        app.dependency_overrides.clear()

    def test_requires_authentication(self):
        response = self.client.get('/api/admin/users')
        assert response.status_code == 401

    def test_forbidden_for_regular_user(self):
        response = self.client.get('/api/admin/users', headers=_bearer(self.student))

        assert response.status_code == 403
        assert response.json()['detail'] == 'Administrator access required'

    def test_admin_lists_users_newest_first(self):
        response = self.client.get('/api/admin/users', headers=_bearer(self.admin))

        assert response.status_code == 200
        data = response.json()
        assert [u['email'] for u in data] == ['alice@x.com', 'dean@college.edu']
        assert all('password_hash' not in u for u in data)

    def test_limit_is_applied(self):
        response = self.client.get('/api/admin/users', params={'limit': 1}, headers=_bearer(self.admin))

        assert response.status_code == 200
        assert len(response.json()) == 1

    def test_limit_out_of_range_returns_422(self):
        response = self.client.get('/api/admin/users', params={'limit': 0}, headers=_bearer(self.admin))
        assert response.status_code == 422

    def test_role_claim_is_not_trusted_over_stored_role(self):
        """A token claiming ADMIN for a USER account is still refused."""
        token = get_token_issuer().issue(self.student.email, claims={"role": "ADMIN", "typ": "access"})

        response = self.client.get('/api/admin/users', headers={'Authorization': f'Bearer {token}'})

        assert response.status_code == 403


if __name__ == '__main__':
    unittest.main()
