"""
Migration Runner - Moves RetroVault data to the unified Firestore structure

Usage:
    python -m retrovault_backend.run_migrations            # migrate all users
    python -m retrovault_backend.run_migrations --status   # report only
    python -m retrovault_backend.run_migrations --verify <userId>
    python -m retrovault_backend.run_migrations --rollback <userId>
    python -m retrovault_backend.run_migrations --cleanup <userId>

Exits 0 when the run completes, even if individual users failed; exits 1 only
on an unhandled error (for example when the users collection cannot be listed).
"""

import argparse
import logging
import sys

from retrovault_backend.migrations.unified_structure import UnifiedStructureMigrator
from retrovault_backend.migrations.verification import (
    cleanup_old_collections,
    rollback_user_migration,
    verify_migration,
)

logger = logging.getLogger(__name__)


def print_status(status):
    print("Migration Status:")
    print(f"  Total Users: {status['totalUsers']}")
    print(f"  Migrated: {status['migratedUsers']}")
    print(f"  Pending: {status['pendingUsers']}")
    print(f"  Errors: {status['errorUsers']}")


def print_verification(verification):
    print("Verification Results:")
    print(f"  ✅ User Profile: Found ({verification['status']})")
    print(f"  📊 Accounts: {verification['accountsCount']}")
    print(f"  💳 Transactions: {verification['transactionsCount']}")
    print(f"  💰 Budgets: {verification['budgetsCount']}")
    print(f"  🎯 Goals: {verification['goalsCount']}")

    summary = verification.get('financialSummary') or {}
    if summary:
        print("\n💰 Financial Summary:")
        print(f"  Balance: ${summary.get('totalBalance', 0)}")
        print(f"  Income: ${summary.get('totalIncome', 0)}")
        print(f"  Expenses: ${summary.get('totalExpenses', 0)}")
        print(f"  Savings: ${summary.get('totalSavings', 0)}")


def run_migration(migrator, user_id=None):
    """Run the migration with status reporting before and after"""
    print("=" * 80)
    print("🚀 RETROVAULT UNIFIED STRUCTURE MIGRATION")
    print("=" * 80)

    print("\n📊 Checking current migration status...")
    status = migrator.get_migration_status()
    print_status(status)

    if status['migratedUsers'] > 0:
        print("\n⚠️  Some users have already been migrated.")
        if migrator.resume or migrator.skip_existing:
            print("   Already-migrated data will be skipped.")
        else:
            print("   Re-running will insert their flat documents again.")

    print("\n🔄 Starting migration process...")
    result = migrator.migrate_to_unified_structure(user_id=user_id)

    print("\n" + "=" * 80)
    print("MIGRATION SUMMARY")
    print("=" * 80)
    print(f"✅ Successfully migrated: {result['migratedCount']} users")
    print(f"❌ Errors: {result['errorCount']} users")
    print(f"📊 Total users: {result['totalUsers']}")
    print(f"🏷️  Categories created: {result['categoriesCreated']}")
    print(f"⏱️  Duration: {result['duration']:.2f} seconds")

    failures = [r for r in result['results'] if not r['success']]
    if failures:
        print("\n⚠️  Some users had errors during migration:")
        for failure in failures:
            print(f"  - {failure['userId']}: {failure['error']}")

    sample = next((r for r in result['results'] if r['success']), None)
    if sample:
        print("\n🔍 Verifying migration integrity...")
        try:
            print_verification(verify_migration(migrator.store, sample['userId']))
        except Exception as e:
            print(f"⚠️  Migration verification failed: {e}")

    print("\n📋 Next Steps:")
    print("1. Test the application against the flat collections")
    print("2. Verify individual users with --verify <userId>")
    print("3. Clean up old nested collections with --cleanup <userId>")

    return result


def build_parser():
    parser = argparse.ArgumentParser(description='Migrate RetroVault users to the unified Firestore structure')
    actions = parser.add_mutually_exclusive_group()
    actions.add_argument('--status', action='store_true', help='Report migration status without migrating')
    actions.add_argument('--verify', metavar='USER_ID', help='Report flat-collection counts for a user')
    actions.add_argument('--rollback', metavar='USER_ID', help="Delete a user's flat-collection documents")
    actions.add_argument('--cleanup', metavar='USER_ID', help="Delete a migrated user's nested source data")
    parser.add_argument('--user', metavar='USER_ID', help='Migrate only this user')
    parser.add_argument('--resume', action='store_true', help='Skip steps already checkpointed for each user')
    parser.add_argument('--skip-existing', action='store_true',
                        help='Skip accounts/transactions already migrated (matched by nessieId)')
    return parser


def main(argv=None, db=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s %(name)s: %(message)s')

    migrator = UnifiedStructureMigrator(db, skip_existing=args.skip_existing, resume=args.resume)

    try:
        if args.status:
            print_status(migrator.get_migration_status())
        elif args.verify:
            print(f"🔍 Verifying migration for user: {args.verify}")
            print_verification(verify_migration(migrator.store, args.verify))
        elif args.rollback:
            deleted = rollback_user_migration(migrator.store, args.rollback)
            print(f"✅ Rollback completed for user {args.rollback}: {deleted}")
        elif args.cleanup:
            deleted = cleanup_old_collections(migrator.store, args.cleanup)
            print(f"✅ Cleaned up old collections for user {args.cleanup}: {deleted}")
        else:
            run_migration(migrator, user_id=args.user)
    except Exception as e:
        logger.exception("Migration run failed")
        print(f"\n❌ Migration failed: {e}")
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
