"""Tests for MongoUserRepository with a mocked pymongo collection."""

import unittest
from datetime import datetime, timezone
from unittest.mock import MagicMock

from pymongo.errors import DuplicateKeyError, PyMongoError

from adapter.mongodb.connection import USERS_COLLECTION_NAME
from adapter.mongodb.user_repository import MongoUserRepository
from domain.model.errors import RepositoryError
from domain.model.user import Role, User


def _doc(**overrides) -> dict:
    now = datetime.now(timezone.utc)
    doc = {
        '_id': 'user-1',
        'name': 'Alice',
        'email': 'alice@x.com',
        'password_hash': 'hashed',
        'role': 'USER',
        'created_at': now,
        'updated_at': now,
        'last_login': None,
    }
    doc.update(overrides)
    return doc


class TestMongoUserRepository(unittest.TestCase):

    def setUp(self):
        self.collection = MagicMock()
        self.db = MagicMock()
        self.db.__getitem__.return_value = self.collection
        self.repo = MongoUserRepository(self.db)

    def test_uses_users_collection(self):
        self.db.__getitem__.assert_called_with(USERS_COLLECTION_NAME)

    # ── save ──────────────────────────────────────────────────

    def test_save_inserts_document_with_role(self):
        user = User.create('Alice', 'alice@x.com', 'hashed', Role.ADMIN)

        result = self.repo.save(user)

        self.assertIs(result, user)
        doc = self.collection.insert_one.call_args[0][0]
        self.assertEqual(doc['_id'], user.id)
        self.assertEqual(doc['email'], 'alice@x.com')
        self.assertEqual(doc['password_hash'], 'hashed')
        self.assertEqual(doc['role'], 'ADMIN')

    def test_save_duplicate_email_returns_none(self):
        self.collection.insert_one.side_effect = DuplicateKeyError('E11000 duplicate key')
        self.assertIsNone(self.repo.save(User.create('Alice', 'alice@x.com', 'hashed')))

    def test_save_db_error_returns_none(self):
        self.collection.insert_one.side_effect = PyMongoError('network')
        self.assertIsNone(self.repo.save(User.create('Alice', 'alice@x.com', 'hashed')))

    # ── reads ────────────────────────────────────────────────

    def test_get_by_email_maps_document(self):
        self.collection.find_one.return_value = _doc(role='ADMIN')

        user = self.repo.get_by_email('alice@x.com')

        self.assertEqual(user.id, 'user-1')
        self.assertEqual(user.role, Role.ADMIN)
        self.collection.find_one.assert_called_once_with({'email': 'alice@x.com'})

    def test_missing_role_defaults_to_user(self):
        doc = _doc()
        del doc['role']
        self.collection.find_one.return_value = doc

        self.assertEqual(self.repo.get_by_email('alice@x.com').role, Role.USER)

    def test_get_by_email_not_found(self):
        self.collection.find_one.return_value = None
        self.assertIsNone(self.repo.get_by_email('ghost@x.com'))

    def test_get_by_email_db_error_raises(self):
        self.collection.find_one.side_effect = PyMongoError('network')
        with self.assertRaises(RepositoryError):
            self.repo.get_by_email('alice@x.com')

    def test_list_all_sorts_newest_first(self):
        cursor = self.collection.find.return_value.sort.return_value.limit.return_value
        cursor.__iter__.return_value = iter([_doc(_id='u2'), _doc(_id='u1')])

        users = self.repo.list_all(limit=2)

        self.assertEqual([u.id for u in users], ['u2', 'u1'])
        self.collection.find.return_value.sort.return_value.limit.assert_called_once_with(2)

    # ── updates ──────────────────────────────────────────────

    def test_update_password(self):
        self.collection.update_one.return_value = MagicMock(modified_count=1)

        self.assertTrue(self.repo.update_password('user-1', 'new-hash'))

        query, update = self.collection.update_one.call_args[0]
        self.assertEqual(query, {'_id': 'user-1'})
        self.assertEqual(update['$set']['password_hash'], 'new-hash')

    def test_update_last_login_no_match(self):
        self.collection.update_one.return_value = MagicMock(modified_count=0)
        self.assertFalse(self.repo.update_last_login('ghost'))

    def test_ensure_indexes_creates_unique_email_index(self):
        self.collection.index_information.return_value = {'_id_': {'key': [('_id', 1)]}}

        self.assertTrue(self.repo.ensure_indexes())

        first_call = self.collection.create_index.call_args_list[0]
        self.assertEqual(first_call[0][0], [('email', 1)])
        self.assertTrue(first_call[1]['unique'])
        self.collection.drop_index.assert_not_called()

    def test_ensure_indexes_replaces_same_named_index_with_other_keys(self):
        self.collection.index_information.return_value = {
            'idx_users_email': {'key': [('username', 1)]},
        }

        self.assertTrue(self.repo.ensure_indexes())

        self.collection.drop_index.assert_called_once_with('idx_users_email')

    def test_ensure_indexes_reports_failure(self):
        self.collection.index_information.return_value = {}
        self.collection.create_index.side_effect = PyMongoError('boom')

        self.assertFalse(self.repo.ensure_indexes())


if __name__ == '__main__':
    unittest.main()
