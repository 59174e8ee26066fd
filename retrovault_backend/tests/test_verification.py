"""
Unit Tests for verification, rollback and cleanup
"""

import unittest

from fake_firestore import FakeFirestore

from retrovault_backend.migrations.unified_structure import (
    MigrationError,
    ProfileNotFoundError,
    UnifiedStructureMigrator,
    checkpoint_document_id,
)
from retrovault_backend.migrations.verification import (
    cleanup_old_collections,
    rollback_user_migration,
    verify_migration,
)


class MigratedUserTestCase(unittest.TestCase):
    """Alice migrated with an account, two transactions, a budget and a goal"""

    def setUp(self):
        self.db = FakeFirestore()
        self.db.seed('users/alice', {'name': 'Alice', 'balance': 100})
        self.db.seed('users/alice/accounts/old-acc-1', {'type': 'Checking', 'balance': 500})
        self.db.seed('users/alice/transactions/old-tx-1', {'type': 'income', 'amount': 1000})
        self.db.seed('users/alice/transactions/old-tx-2', {'type': 'expense', 'amount': 300})
        self.db.seed('users/alice/settings/budgets', {'Food': 200})
        self.db.seed('users/alice/goals/old-goal-1', {'title': 'Emergency Fund'})
        self.db.seed('accounts/unrelated', {'userId': 'someone-else', 'name': 'Theirs'})

        self.migrator = UnifiedStructureMigrator(self.db)
        self.migrator.migrate_to_unified_structure()
        self.store = self.migrator.store


class TestVerifyMigration(MigratedUserTestCase):

    def test_counts_and_summary(self):
        result = verify_migration(self.store, 'alice')

        self.assertTrue(result['success'])
        self.assertEqual(result['status'], 'migrated')
        self.assertEqual(result['accountsCount'], 1)
        self.assertEqual(result['transactionsCount'], 2)
        self.assertEqual(result['budgetsCount'], 1)
        self.assertEqual(result['goalsCount'], 1)
        self.assertEqual(result['financialSummary']['totalSavings'], 700)

    def test_verifying_twice_gives_identical_counts(self):
        """
        Scenario: Verification runs twice with no writes in between
        Expected: Identical results and no writes
        """
        writes_before = self.db.write_count

        first = verify_migration(self.store, 'alice')
        second = verify_migration(self.store, 'alice')

        self.assertEqual(first, second)
        self.assertEqual(self.db.write_count, writes_before)

    def test_missing_profile(self):
        with self.assertRaises(ProfileNotFoundError) as context:
            verify_migration(self.store, 'ghost')

        self.assertEqual(str(context.exception), 'User profile not found')


class TestRollbackUserMigration(MigratedUserTestCase):

    def test_rollback_empties_flat_collections(self):
        """
        Scenario: Rollback after a successful migration
        Expected: No flat documents left for the user, profile unchanged
        """
        profile_before = self.db.get_data('users/alice')

        deleted = rollback_user_migration(self.store, 'alice')

        self.assertEqual(deleted, {'accounts': 1, 'transactions': 2, 'budgets': 1, 'goals': 1})
        for collection in ('accounts', 'transactions', 'budgets', 'goals'):
            self.assertEqual(self.db.documents(collection, userId='alice'), [])
        self.assertEqual(self.db.get_data('users/alice'), profile_before)

    def test_rollback_leaves_other_users_and_nested_source(self):
        rollback_user_migration(self.store, 'alice')

        self.assertEqual(len(self.db.documents('accounts', userId='someone-else')), 1)
        self.assertIsNotNone(self.db.get_data('users/alice/accounts/old-acc-1'))

    def test_rollback_clears_checkpoint(self):
        rollback_user_migration(self.store, 'alice')

        self.assertIsNone(self.db.get_data(f'migration_status/{checkpoint_document_id("alice")}'))

    def test_migration_after_rollback_does_not_duplicate(self):
        rollback_user_migration(self.store, 'alice')
        self.migrator.migrate_to_unified_structure(user_id='alice')

        self.assertEqual(len(self.db.documents('accounts', userId='alice')), 1)
        self.assertEqual(len(self.db.documents('transactions', userId='alice')), 2)

    def test_rollback_with_nothing_to_delete(self):
        deleted = rollback_user_migration(self.store, 'ghost')

        self.assertEqual(deleted, {'accounts': 0, 'transactions': 0, 'budgets': 0, 'goals': 0})


class TestCleanupOldCollections(MigratedUserTestCase):

    def test_cleanup_deletes_nested_source(self):
        deleted = cleanup_old_collections(self.store, 'alice')

        self.assertEqual(deleted, {'accounts': 1, 'transactions': 2, 'goals': 1, 'settings': 1})
        self.assertEqual(self.db.documents('users/alice/accounts'), [])
        self.assertEqual(self.db.documents('users/alice/transactions'), [])
        self.assertEqual(self.db.documents('users/alice/goals'), [])
        self.assertIsNone(self.db.get_data('users/alice/settings/budgets'))
        # Flat data and profile are kept
        self.assertEqual(len(self.db.documents('transactions', userId='alice')), 2)
        self.assertIsNotNone(self.db.get_data('users/alice'))

    def test_cleanup_refuses_pending_user(self):
        """
        Scenario: Cleanup requested for a user still in the old layout
        Expected: MigrationError, nested data untouched
        """
        self.db.seed('users/pat', {'name': 'Pat'})
        self.db.seed('users/pat/accounts/a1', {'type': 'Savings'})

        with self.assertRaises(MigrationError):
            cleanup_old_collections(self.store, 'pat')

        self.assertIsNotNone(self.db.get_data('users/pat/accounts/a1'))

    def test_cleanup_missing_profile(self):
        with self.assertRaises(ProfileNotFoundError):
            cleanup_old_collections(self.store, 'ghost')


if __name__ == '__main__':
    unittest.main()
