"""
Unified Structure Migration
Purpose: Move each user's finance data from nested per-user subcollections
(users/{uid}/accounts, ...) into flat top-level collections keyed by userId,
then recompute the financial summary cached on the profile.

This migration is:
- SEQUENTIAL: one user at a time, one entity kind at a time
- ISOLATED: a failing user is recorded and the run moves on
- TRACKED: each completed step is checkpointed in migration_status so a
  resumed run (resume=True) can skip work that already landed
"""

import logging
import time
from typing import Any, Dict, List, Optional

from retrovault_backend.migrations.record_transformer import (
    transform_account,
    transform_budget_entries,
    transform_goal,
    transform_transaction,
    transform_user_profile,
)
from retrovault_backend.models import (
    ACCOUNTS_COLLECTION,
    BUDGETS_COLLECTION,
    CATEGORIES_COLLECTION,
    DEFAULT_CATEGORIES,
    GOALS_COLLECTION,
    MIGRATION_STATUS_COLLECTION,
    OLD_ACCOUNTS_SUBCOLLECTION,
    OLD_BUDGETS_DOCUMENT,
    OLD_GOALS_SUBCOLLECTION,
    OLD_SETTINGS_SUBCOLLECTION,
    OLD_TRANSACTIONS_SUBCOLLECTION,
    TRANSACTIONS_COLLECTION,
    MigrationResult,
    MigrationStatus,
    utc_now,
)
from retrovault_backend.services.firestore_service import FirestoreService
from retrovault_backend.utils.financial_summary import recalculate_financial_summary

logger = logging.getLogger(__name__)

MIGRATION_NAME = 'unified_structure_v2'

STEP_PROFILE = 'profile'
STEP_ACCOUNTS = 'accounts'
STEP_TRANSACTIONS = 'transactions'
STEP_BUDGETS = 'budgets'
STEP_GOALS = 'goals'
STEP_FINANCIAL_SUMMARY = 'financial_summary'

MIGRATION_STEPS = [
    STEP_PROFILE,
    STEP_ACCOUNTS,
    STEP_TRANSACTIONS,
    STEP_BUDGETS,
    STEP_GOALS,
    STEP_FINANCIAL_SUMMARY,
]


class MigrationError(Exception):
    """Raised when a migration precondition does not hold"""


class ProfileNotFoundError(MigrationError):
    pass


def checkpoint_document_id(user_id: str) -> str:
    return f"{MIGRATION_NAME}:{user_id}"


class UnifiedStructureMigrator:
    """
    Migrates users from the nested layout to the flat layout.

    Args:
        db: Firestore client (defaults to the shared Firebase Admin client)
        firestore_service: pre-built FirestoreService, overrides db
        skip_existing: skip accounts/transactions whose (userId, nessieId)
            already exist in the flat collection instead of inserting again
        resume: skip steps the user's checkpoint already records as done
    """

    def __init__(self, db=None, firestore_service=None, skip_existing=False, resume=False):
        self.store = firestore_service or FirestoreService(db)
        self.skip_existing = skip_existing
        self.resume = resume

    # ==================== CHECKPOINTS ====================

    def _checkpoint_ref(self, user_id: str):
        return self.store.db.collection(MIGRATION_STATUS_COLLECTION).document(checkpoint_document_id(user_id))

    def get_checkpoint(self, user_id: str) -> Optional[Dict[str, Any]]:
        snapshot = self._checkpoint_ref(user_id).get()
        if not snapshot.exists:
            return None
        return snapshot.to_dict() or {}

    def _save_checkpoint(self, user_id: str, completed_steps: List[str], completed: bool, error: Optional[str] = None):
        self._checkpoint_ref(user_id).set({
            'migration_name': MIGRATION_NAME,
            'userId': user_id,
            'completedSteps': list(completed_steps),
            'completed': completed,
            'error': error,
            'updatedAt': utc_now(),
        })

    def clear_checkpoint(self, user_id: str):
        self._checkpoint_ref(user_id).delete()

    # ==================== PER-ENTITY MIGRATORS ====================

    def migrate_user_profile(self, user_id: str, old_user_data: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """Replace users/{uid} with the unified profile shape"""
        logger.info(f"Migrating user profile: {user_id}")

        profile = transform_user_profile(user_id, old_user_data).to_document()
        self.store.user_ref(user_id).set(profile)

        logger.info(f"Migrated user profile: {user_id}")
        return profile

    def migrate_user_accounts(self, user_id: str) -> MigrationResult:
        """Copy users/{uid}/accounts into the flat accounts collection"""
        logger.info(f"Migrating accounts for user: {user_id}")

        snapshots = self.store.stream_nested(user_id, OLD_ACCOUNTS_SUBCOLLECTION)
        if not snapshots:
            logger.info(f"No accounts found for user: {user_id}")
            return MigrationResult()

        logger.info(f"Found {len(snapshots)} accounts for user: {user_id}")
        existing = self._existing_nessie_ids(ACCOUNTS_COLLECTION, user_id)
        result = MigrationResult()

        for snapshot in snapshots:
            if snapshot.id in existing:
                result.skipped += 1
                continue

            document = transform_account(user_id, snapshot.id, snapshot.to_dict()).to_document()
            account_id = self.store.add_document(ACCOUNTS_COLLECTION, document)
            result.records.append({'id': account_id, **document})
            logger.debug(f"Migrated account {snapshot.id} -> {account_id}")

        result.count = len(result.records)
        logger.info(f"Migrated {result.count} accounts for user: {user_id} ({result.skipped} already present)")
        return result

    def migrate_user_transactions(self, user_id: str) -> MigrationResult:
        """Copy users/{uid}/transactions into the flat collection with one batched write"""
        logger.info(f"Migrating transactions for user: {user_id}")

        snapshots = self.store.stream_nested(user_id, OLD_TRANSACTIONS_SUBCOLLECTION)
        if not snapshots:
            logger.info(f"No transactions found for user: {user_id}")
            return MigrationResult()

        logger.info(f"Found {len(snapshots)} transactions for user: {user_id}")
        existing = self._existing_nessie_ids(TRANSACTIONS_COLLECTION, user_id)
        result = MigrationResult()
        operations = []

        for snapshot in snapshots:
            if snapshot.id in existing:
                result.skipped += 1
                continue

            document = transform_transaction(user_id, snapshot.id, snapshot.to_dict()).to_document()
            ref = self.store.new_document_ref(TRANSACTIONS_COLLECTION)
            operations.append(('set', ref, document))
            result.records.append({'id': ref.id, **document})

        if operations:
            self.store.commit_or_discard(operations)

        result.count = len(result.records)
        logger.info(f"Migrated {result.count} transactions for user: {user_id} ({result.skipped} already present)")
        return result

    def migrate_user_budgets(self, user_id: str) -> MigrationResult:
        """Turn the users/{uid}/settings/budgets document into Budget records"""
        logger.info(f"Migrating budgets for user: {user_id}")

        settings_ref = self.store.nested_collection(user_id, OLD_SETTINGS_SUBCOLLECTION).document(OLD_BUDGETS_DOCUMENT)
        snapshot = settings_ref.get()
        if not snapshot.exists:
            logger.info(f"No budgets found for user: {user_id}")
            return MigrationResult()

        result = MigrationResult()
        for budget in transform_budget_entries(user_id, snapshot.to_dict()):
            document = budget.to_document()
            budget_id = self.store.add_document(BUDGETS_COLLECTION, document)
            result.records.append({'id': budget_id, **document})

        result.count = len(result.records)
        logger.info(f"Migrated {result.count} budgets for user: {user_id}")
        return result

    def migrate_user_goals(self, user_id: str) -> MigrationResult:
        """Copy users/{uid}/goals into the flat goals collection"""
        logger.info(f"Migrating goals for user: {user_id}")

        snapshots = self.store.stream_nested(user_id, OLD_GOALS_SUBCOLLECTION)
        if not snapshots:
            logger.info(f"No goals found for user: {user_id}")
            return MigrationResult()

        result = MigrationResult()
        for snapshot in snapshots:
            document = transform_goal(user_id, snapshot.id, snapshot.to_dict()).to_document()
            goal_id = self.store.add_document(GOALS_COLLECTION, document)
            result.records.append({'id': goal_id, **document})

        result.count = len(result.records)
        logger.info(f"Migrated {result.count} goals for user: {user_id}")
        return result

    def update_user_financial_summary(self, user_id: str) -> Optional[Dict[str, Any]]:
        return recalculate_financial_summary(self.store, user_id)

    def _existing_nessie_ids(self, collection: str, user_id: str) -> set:
        if not self.skip_existing:
            return set()
        return self.store.existing_nessie_ids(collection, user_id)

    # ==================== USER MIGRATION ====================

    def migrate_user(self, user_id: str, old_user_data: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Run every step for one user, in order, checkpointing after each.

        Raises whatever the failing step raised, after recording the error on
        the checkpoint.
        """
        logger.info(f"Starting complete migration for user: {user_id}")

        completed_steps = []
        if self.resume:
            checkpoint = self.get_checkpoint(user_id) or {}
            if checkpoint.get('completed'):
                logger.info(f"User {user_id} already migrated, skipping (resume)")
                return {'userId': user_id, 'success': True, 'alreadyMigrated': True}
            completed_steps = [step for step in checkpoint.get('completedSteps', []) if step in MIGRATION_STEPS]

        steps = {
            STEP_PROFILE: lambda: self.migrate_user_profile(user_id, old_user_data),
            STEP_ACCOUNTS: lambda: self.migrate_user_accounts(user_id),
            STEP_TRANSACTIONS: lambda: self.migrate_user_transactions(user_id),
            STEP_BUDGETS: lambda: self.migrate_user_budgets(user_id),
            STEP_GOALS: lambda: self.migrate_user_goals(user_id),
            STEP_FINANCIAL_SUMMARY: lambda: self.update_user_financial_summary(user_id),
        }

        result = {'userId': user_id, 'success': True, 'skippedSteps': list(completed_steps)}

        try:
            for step in MIGRATION_STEPS:
                if step in completed_steps:
                    continue
                outcome = steps[step]()
                if isinstance(outcome, MigrationResult):
                    result[step] = outcome.count
                completed_steps.append(step)
                self._save_checkpoint(user_id, completed_steps, completed=False)
        except Exception as e:
            logger.error(f"Error in complete migration for user {user_id}: {e}")
            self._save_checkpoint(user_id, completed_steps, completed=False, error=str(e))
            raise

        self._save_checkpoint(user_id, completed_steps, completed=True)
        logger.info(f"Complete migration finished for user: {user_id}")
        return result

    # ==================== ORCHESTRATOR ====================

    def migrate_to_unified_structure(self, user_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Migrate every user (or only user_id) and seed the category catalog.

        Per-user failures are recorded in the results and never abort the run.
        Only a failure listing users or seeding categories propagates, and
        ProfileNotFoundError when user_id names a user that does not exist.
        """
        logger.info("Starting migration to unified Firestore structure")
        start_time = time.time()

        if user_id:
            snapshot = self.store.user_ref(user_id).get()
            if not snapshot.exists:
                raise ProfileNotFoundError(f"User {user_id} not found")
            users = [(user_id, snapshot.to_dict())]
        else:
            users = [(snapshot.id, snapshot.to_dict()) for snapshot in self.store.list_users()]

        logger.info(f"Found {len(users)} users to migrate")

        migrated_count = 0
        error_count = 0
        results = []

        for uid, user_data in users:
            try:
                logger.info(f"Migrating user: {uid}")
                results.append(self.migrate_user(uid, user_data or {}))
                migrated_count += 1
                logger.info(f"Successfully migrated user: {uid}")
            except Exception as e:
                logger.error(f"Error migrating user {uid}: {e}")
                error_count += 1
                results.append({
                    'userId': uid,
                    'success': False,
                    'error': str(e),
                })

        categories_created = self.seed_default_categories()

        duration = time.time() - start_time
        logger.info(f"Migration completed: {migrated_count} migrated, {error_count} errors")

        return {
            'success': True,
            'totalUsers': len(users),
            'migratedCount': migrated_count,
            'errorCount': error_count,
            'categoriesCreated': categories_created,
            'duration': duration,
            'results': results,
        }

    def seed_default_categories(self) -> int:
        """
        Create the default category catalog, keyed by name.

        Default categories already present are left alone.

        Returns:
            int: number of categories created
        """
        logger.info("Creating default categories")

        existing = {
            (snapshot.to_dict() or {}).get('name')
            for snapshot in self.store.query_by_field(CATEGORIES_COLLECTION, 'isDefault', True)
        }
        missing = [category for category in DEFAULT_CATEGORIES if category.name not in existing]

        self.store.commit_in_batches(
            ('set', self.store.new_document_ref(CATEGORIES_COLLECTION), category.to_document())
            for category in missing
        )

        logger.info(f"Created {len(missing)} default categories ({len(existing)} already present)")
        return len(missing)

    # ==================== STATUS ====================

    def get_user_status(self, user_id: str) -> MigrationStatus:
        return MigrationStatus.from_profile(self.store.get_user(user_id))

    def get_migration_status(self) -> Dict[str, int]:
        """Count migrated and pending users across the users collection"""
        users = self.store.list_users()
        status = {
            'totalUsers': len(users),
            'migratedUsers': 0,
            'pendingUsers': 0,
            'errorUsers': 0,
        }

        for snapshot in users:
            if MigrationStatus.from_profile(snapshot.to_dict()) is MigrationStatus.MIGRATED:
                status['migratedUsers'] += 1
            else:
                status['pendingUsers'] += 1
            checkpoint = self.get_checkpoint(snapshot.id)
            if checkpoint and checkpoint.get('error'):
                status['errorUsers'] += 1

        return status


def run_unified_structure_migration(db=None, user_id=None, skip_existing=False, resume=False) -> Dict[str, Any]:
    """
    Convenience function to run the unified structure migration

    Args:
        db: Firestore client (defaults to the shared Firebase Admin client)
        user_id: migrate only this user
        skip_existing: skip already-migrated accounts/transactions by nessieId
        resume: skip steps already recorded in the user's checkpoint

    Returns:
        dict: Migration summary
    """
    migrator = UnifiedStructureMigrator(db, skip_existing=skip_existing, resume=resume)
    return migrator.migrate_to_unified_structure(user_id=user_id)
