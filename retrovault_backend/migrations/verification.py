"""
Verification, rollback and cleanup for the unified structure migration

- verify_migration: read-only counts for manual confirmation
- rollback_user_migration: compensating delete of a user's flat documents
- cleanup_old_collections: delete the nested source once a user verifies as migrated
"""

import logging
from typing import Any, Dict

from retrovault_backend.migrations.unified_structure import (
    MIGRATION_NAME,
    MigrationError,
    ProfileNotFoundError,
    UnifiedStructureMigrator,
)
from retrovault_backend.models import (
    ACCOUNTS_COLLECTION,
    BUDGETS_COLLECTION,
    GOALS_COLLECTION,
    OLD_ACCOUNTS_SUBCOLLECTION,
    OLD_BUDGETS_DOCUMENT,
    OLD_GOALS_SUBCOLLECTION,
    OLD_SETTINGS_SUBCOLLECTION,
    OLD_TRANSACTIONS_SUBCOLLECTION,
    TRANSACTIONS_COLLECTION,
    USER_OWNED_COLLECTIONS,
    MigrationStatus,
)

logger = logging.getLogger(__name__)


def verify_migration(firestore_service, user_id: str) -> Dict[str, Any]:
    """
    Count a user's flat documents and read back the financial summary.

    Nothing is compared against pre-migration counts; the numbers are
    surfaced for manual confirmation. No writes are made.

    Raises:
        ProfileNotFoundError: if users/{uid} does not exist
    """
    logger.info(f"Verifying migration for user: {user_id}")

    profile = firestore_service.get_user(user_id)
    if profile is None:
        raise ProfileNotFoundError('User profile not found')

    counts = {
        collection: len(firestore_service.query_by_user(collection, user_id))
        for collection in USER_OWNED_COLLECTIONS
    }
    financial_summary = profile.get('financialSummary') or {}

    logger.info(
        f"User {user_id}: {counts[ACCOUNTS_COLLECTION]} accounts, "
        f"{counts[TRANSACTIONS_COLLECTION]} transactions, {counts[BUDGETS_COLLECTION]} budgets, "
        f"{counts[GOALS_COLLECTION]} goals"
    )

    return {
        'success': True,
        'userId': user_id,
        'status': MigrationStatus.from_profile(profile).value,
        'accountsCount': counts[ACCOUNTS_COLLECTION],
        'transactionsCount': counts[TRANSACTIONS_COLLECTION],
        'budgetsCount': counts[BUDGETS_COLLECTION],
        'goalsCount': counts[GOALS_COLLECTION],
        'financialSummary': financial_summary,
    }


def rollback_user_migration(firestore_service, user_id: str) -> Dict[str, int]:
    """
    Delete every flat account, transaction, budget and goal owned by a user.

    The profile (including financialSummary and dataVersion) and the nested
    source are left untouched, so a rollback is partial by nature. The user's
    migration checkpoint is cleared so a later resumed run starts over.

    Returns:
        dict: deleted document count per collection
    """
    logger.info(f"Rolling back migration for user: {user_id}")

    deleted = {}
    for collection in USER_OWNED_COLLECTIONS:
        snapshots = firestore_service.query_by_user(collection, user_id)
        deleted[collection] = firestore_service.delete_snapshots(snapshots)

    UnifiedStructureMigrator(firestore_service=firestore_service).clear_checkpoint(user_id)

    logger.info(f"Rollback completed for user {user_id} ({MIGRATION_NAME}): {deleted}")
    return deleted


def cleanup_old_collections(firestore_service, user_id: str) -> Dict[str, int]:
    """
    Delete the nested per-user source after the user verifies as migrated.

    Raises:
        ProfileNotFoundError: if users/{uid} does not exist
        MigrationError: if the profile is not marked as migrated

    Returns:
        dict: deleted document count per nested collection
    """
    logger.info(f"Cleaning up old collections for user: {user_id}")

    profile = firestore_service.get_user(user_id)
    if profile is None:
        raise ProfileNotFoundError('User profile not found')
    if MigrationStatus.from_profile(profile) is not MigrationStatus.MIGRATED:
        raise MigrationError(f"User {user_id} has not been migrated; refusing to delete nested data")

    deleted = {}
    for name in (OLD_ACCOUNTS_SUBCOLLECTION, OLD_TRANSACTIONS_SUBCOLLECTION, OLD_GOALS_SUBCOLLECTION):
        snapshots = firestore_service.stream_nested(user_id, name)
        deleted[name] = firestore_service.delete_snapshots(snapshots)

    settings_ref = firestore_service.nested_collection(user_id, OLD_SETTINGS_SUBCOLLECTION).document(OLD_BUDGETS_DOCUMENT)
    if settings_ref.get().exists:
        settings_ref.delete()
        deleted[OLD_SETTINGS_SUBCOLLECTION] = 1
    else:
        deleted[OLD_SETTINGS_SUBCOLLECTION] = 0

    logger.info(f"Cleaned up old collections for user {user_id}: {deleted}")
    return deleted
