"""
Nessie API Utilities

Reusable Capital One Nessie API calls used when seeding a user's data:
- Account lookup
- Account transactions (deposits and withdrawals)
- Transformation of raw Nessie transactions into RetroVault transactions
"""

import logging
from datetime import datetime, timedelta, timezone

import requests

from retrovault_backend.config import environment
from retrovault_backend.models import DEFAULT_CATEGORIES

logger = logging.getLogger(__name__)


class NessieAPIError(Exception):
    pass


def call_nessie_api(path, params=None):
    """Generic Nessie API GET caller"""
    if not environment.is_nessie_configured():
        raise NessieAPIError('Nessie API key not configured')

    url = f"{environment.NESSIE_BASE_URL}/{path.lstrip('/')}"
    query = [('key', environment.NESSIE_API_KEY)] + list(params or [])

    try:
        response = requests.get(url, params=query, timeout=environment.NESSIE_TIMEOUT)
    except requests.RequestException as e:
        raise NessieAPIError(f'Nessie API request failed: {e}') from e

    logger.info(f"Nessie API GET {path}: {response.status_code}")

    if response.status_code != 200:
        raise NessieAPIError(f'Nessie API error: {response.status_code} - {response.text}')
    return response.json()


def get_accounts():
    return call_nessie_api('accounts')


def get_transactions(account_id, days=30):
    """Deposits and withdrawals for an account over the last `days` days"""
    end = datetime.now(timezone.utc).date()
    start = end - timedelta(days=days)
    return call_nessie_api(f'accounts/{account_id}/transactions', params=[
        ('type', 'deposit'),
        ('type', 'withdrawal'),
        ('begin_date', start.isoformat()),
        ('end_date', end.isoformat()),
    ])


def categorize_transaction(description):
    """Assign a category using the default catalog's keyword rules, in priority order"""
    text = (description or '').lower()
    for category in sorted(DEFAULT_CATEGORIES, key=lambda c: c.priority):
        if category.auto_assign and any(keyword in text for keyword in category.keywords):
            return category.name
    return 'Other'


def transform_nessie_transactions(nessie_transactions):
    """Signed Nessie amounts become an absolute amount plus an income/expense type"""
    transactions = []
    for transaction in nessie_transactions or []:
        amount = transaction.get('amount') or 0
        transactions.append({
            'id': transaction.get('_id'),
            'date': transaction.get('transaction_date'),
            'category': categorize_transaction(transaction.get('description')),
            'amount': abs(amount),
            'type': 'income' if amount > 0 else 'expense',
            'description': transaction.get('description') or 'Transaction',
            'merchant': transaction.get('merchant_id') or 'Unknown',
            'accountId': transaction.get('account_id'),
        })
    return transactions


def fetch_nessie_data():
    """
    Fetch accounts and the primary account's transactions.

    Raises:
        NessieAPIError: if the API is unavailable or returns no accounts
    """
    accounts = get_accounts()
    if not accounts:
        raise NessieAPIError('No accounts found from Nessie API')

    primary_account = accounts[0]
    transactions = transform_nessie_transactions(get_transactions(primary_account['_id']))

    return {
        'accounts': accounts,
        'transactions': transactions,
        'primaryAccount': primary_account,
    }
