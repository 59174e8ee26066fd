"""
Data Seeding Service for RetroVault
Seeds a user's profile, accounts and transactions directly in the flat layout.
Sources, in order: the Nessie API when it is configured, a random document from
the sampleProfiles collection, then generated mock data.
"""
import logging
import random
from datetime import timedelta, timezone
from typing import Any, Dict, List, Optional

from retrovault_backend.config import environment
from retrovault_backend.migrations.record_transformer import transform_account, transform_transaction
from retrovault_backend.models import (
    ACCOUNTS_COLLECTION,
    SAMPLE_PROFILES_COLLECTION,
    TRANSACTIONS_COLLECTION,
    USER_OWNED_COLLECTIONS,
    UserProfile,
    as_mapping,
    as_number,
    utc_now,
)
from retrovault_backend.services.firestore_service import FirestoreService
from retrovault_backend.utils.financial_summary import calculate_financial_summary
from retrovault_backend.utils.mock_data import generate_mock_data
from retrovault_backend.utils.nessie_utils import NessieAPIError, fetch_nessie_data

logger = logging.getLogger(__name__)

RECENT_SYNC_WINDOW = timedelta(minutes=5)


class SyncService:
    """Seeds or refreshes one user's data"""

    def __init__(self, firestore_service=None, rng=None):
        self.store = firestore_service or FirestoreService()
        self.rng = rng

    def sync_user_data(self, user_id: str, user_info: Optional[Dict[str, Any]] = None,
                       force_refresh: bool = False) -> Dict[str, Any]:
        """
        Seed data for a user unless it is already present.

        Args:
            user_id: Firebase user ID
            user_info: optional {name, email, photoURL}
            force_refresh: replace existing flat data even if the user is seeded

        Returns:
            dict: Sync result
        """
        logger.info(f"Starting data sync for user: {user_id}, forceRefresh: {force_refresh}")
        user_info = as_mapping(user_info)

        existing_user = self.store.get_user(user_id)
        if existing_user and not force_refresh:
            skip_reason = self._skip_reason(existing_user)
            if skip_reason:
                logger.info(f"Skipping sync for user {user_id}: {skip_reason}")
                return self._existing_result(user_id, existing_user, skip_reason)

        if existing_user:
            self._clear_user_data(user_id)

        if environment.is_nessie_configured():
            try:
                return self._seed_from_nessie(user_id, user_info)
            except NessieAPIError as e:
                logger.warning(f"Nessie API unavailable, using sample profile: {e}")
            except Exception as e:
                logger.warning(f"Could not seed from Nessie data, using sample profile: {e}")

        sample_profile = self._get_sample_profile()
        if sample_profile:
            logger.info(f"Using sample profile {sample_profile['id']} for user {user_id}")
            return self._seed_from_sample_profile(user_id, user_info, sample_profile)

        logger.info(f"Creating user {user_id} with mock data")
        return self._seed_from_mock(user_id, user_info)

    # ==================== CONSISTENCY CHECKS ====================

    def _skip_reason(self, existing_user: Dict[str, Any]) -> Optional[str]:
        data_source = existing_user.get('dataSource')
        if data_source and data_source != 'Pending' and not existing_user.get('needsSeeding'):
            return 'Your financial data is already up to date'

        last_sync = as_mapping(existing_user.get('syncStatus')).get('lastSync')
        if last_sync is not None and hasattr(last_sync, 'tzinfo'):
            if last_sync.tzinfo is None:
                last_sync = last_sync.replace(tzinfo=timezone.utc)
            if utc_now() - last_sync < RECENT_SYNC_WINDOW:
                return 'Data was recently synced, skipping to prevent duplicates'

        return None

    def _existing_result(self, user_id, existing_user, message):
        metadata = as_mapping(existing_user.get('metadata'))
        return {
            'success': True,
            'message': message,
            'dataSource': existing_user.get('dataSource'),
            'accountsCount': metadata.get('accountsCount', 0),
            'transactionsCount': metadata.get('transactionsCount', 0),
            'isExistingData': True,
            'userId': user_id,
        }

    def _clear_user_data(self, user_id: str):
        for collection in USER_OWNED_COLLECTIONS:
            self.store.delete_snapshots(self.store.query_by_user(collection, user_id))

    # ==================== SEEDING ====================

    def _seed_from_nessie(self, user_id, user_info):
        nessie_data = fetch_nessie_data()
        primary_account = nessie_data['primaryAccount']

        accounts = []
        for account in nessie_data['accounts']:
            migrated = transform_account(user_id, account.get('_id'), {
                'name': account.get('nickname'),
                'type': account.get('type'),
                'balance': account.get('balance'),
            })
            migrated.institution = 'Nessie Bank'
            migrated.sync_source = 'nessie'
            accounts.append(migrated)

        return self._store_seed_data(
            user_id, user_info, accounts, nessie_data['transactions'],
            data_source='Nessie',
            sync_source='nessie',
            balance=primary_account.get('balance') or 0,
            default_name='Nessie User',
        )

    def _get_sample_profile(self) -> Optional[Dict[str, Any]]:
        """A random document from sampleProfiles, or None when there are none"""
        snapshots = list(self.store.db.collection(SAMPLE_PROFILES_COLLECTION).stream())
        if not snapshots:
            return None
        snapshot = (self.rng or random).choice(snapshots)
        return {'id': snapshot.id, **(snapshot.to_dict() or {})}

    def _seed_from_sample_profile(self, user_id, user_info, sample_profile):
        accounts = []
        for account in sample_profile.get('accounts') or []:
            cloned = transform_account(user_id, str(account.get('id') or ''), account)
            cloned.institution = 'Sample Bank'
            cloned.sync_source = 'sample'
            accounts.append(cloned)

        return self._store_seed_data(
            user_id, user_info, accounts, sample_profile.get('transactions') or [],
            data_source='Sample',
            sync_source='sample',
            balance=as_number(sample_profile.get('balance')) or 0,
            default_name='Demo User',
            message='Sample profile loaded successfully',
        )

    def _seed_from_mock(self, user_id, user_info):
        mock_data = generate_mock_data(self.rng)

        account = transform_account(user_id, 'mock-account', {
            'name': 'Demo Account',
            'type': 'Checking',
            'balance': mock_data['balance'],
        })
        account.institution = 'Demo Bank'
        account.sync_source = 'mock'

        return self._store_seed_data(
            user_id, user_info, [account], mock_data['transactions'],
            data_source='Mock',
            sync_source='mock',
            balance=mock_data['balance'],
            default_name='Demo User',
        )

    def _store_seed_data(self, user_id: str, user_info: Dict[str, Any], accounts: List, raw_transactions: List[Dict],
                         data_source: str, sync_source: str, balance, default_name: str,
                         message: Optional[str] = None) -> Dict[str, Any]:
        summary = calculate_financial_summary(raw_transactions)

        profile = UserProfile(
            name=user_info.get('name') or default_name,
            email=user_info.get('email') or '',
            photo_url=user_info.get('photoURL'),
            total_balance=balance,
            data_source=data_source,
            currency=environment.DEFAULT_CURRENCY,
            timezone=environment.DEFAULT_TIMEZONE,
            total_income=summary['totalIncome'],
            total_expenses=summary['totalExpenses'],
            total_savings=summary['totalSavings'],
            accounts_count=len(accounts),
            transactions_count=summary['transactionsCount'],
        )

        operations = []
        account_ids = {}
        for account in accounts:
            ref = self.store.new_document_ref(ACCOUNTS_COLLECTION)
            account_ids[account.nessie_id] = ref.id
            operations.append(('set', ref, account.to_document()))

        default_account_id = next(iter(account_ids.values()), 'default')
        for raw in raw_transactions:
            transaction = transform_transaction(user_id, str(raw.get('id') or ''), raw)
            transaction.account_id = account_ids.get(raw.get('accountId'), default_account_id)
            transaction.sync_source = sync_source
            operations.append(('set', self.store.new_document_ref(TRANSACTIONS_COLLECTION), transaction.to_document()))

        self.store.commit_or_discard(operations)
        # Profile goes last: a user without one is re-seeded on the next sync
        self.store.user_ref(user_id).set(profile.to_document())

        logger.info(f"Seeded {data_source} data for user {user_id}: "
                    f"{len(accounts)} accounts, {len(raw_transactions)} transactions")
        return {
            'success': True,
            'message': message or f'{data_source} data created successfully',
            'dataSource': data_source,
            'accountsCount': len(accounts),
            'transactionsCount': len(raw_transactions),
            'isConsistent': True,
            'userId': user_id,
        }
