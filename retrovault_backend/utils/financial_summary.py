"""
Financial Summary Utility

Recomputes the denormalized financialSummary cached on a user profile from the
user's flat transactions. Totals are computed in full before anything is
written, so a failed read never leaves partial sums on the profile.
"""

import logging
from typing import Any, Dict, Iterable, Optional

from retrovault_backend.models import (
    EXPENSE_TYPES,
    INCOME_TYPES,
    TRANSACTIONS_COLLECTION,
    as_number,
    utc_now,
)

logger = logging.getLogger(__name__)


def calculate_financial_summary(transactions: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Sum income and expense amounts.

    totalBalance equals totalSavings: no starting balance is carried forward.
    Non-numeric amounts count as zero.
    """
    total_income = 0
    total_expenses = 0
    count = 0

    for transaction in transactions:
        count += 1
        amount = as_number(transaction.get('amount')) or 0
        transaction_type = transaction.get('type')
        if transaction_type in INCOME_TYPES:
            total_income += amount
        elif transaction_type in EXPENSE_TYPES:
            total_expenses += amount

    total_savings = total_income - total_expenses

    return {
        'totalIncome': total_income,
        'totalExpenses': total_expenses,
        'totalSavings': total_savings,
        'totalBalance': total_savings,
        'transactionsCount': count,
    }


def recalculate_financial_summary(firestore_service, user_id: str) -> Optional[Dict[str, Any]]:
    """
    Recompute and persist the financial summary for a user.

    Args:
        firestore_service: FirestoreService instance
        user_id: Owner of the flat transactions

    Returns:
        dict: the persisted summary, or None when the user has no transactions
    """
    logger.info(f"Updating financial summary for user: {user_id}")

    snapshots = firestore_service.query_by_user(TRANSACTIONS_COLLECTION, user_id)
    if not snapshots:
        logger.info(f"No transactions found for financial summary: {user_id}")
        return None

    summary = calculate_financial_summary(snapshot.to_dict() or {} for snapshot in snapshots)
    timestamp = utc_now()

    firestore_service.user_ref(user_id).update({
        'financialSummary.totalIncome': summary['totalIncome'],
        'financialSummary.totalExpenses': summary['totalExpenses'],
        'financialSummary.totalSavings': summary['totalSavings'],
        'financialSummary.totalBalance': summary['totalBalance'],
        'financialSummary.lastUpdated': timestamp,
        'metadata.lastDataUpdate': timestamp,
        'metadata.transactionsCount': summary['transactionsCount'],
    })

    logger.info(
        f"Updated financial summary for user {user_id}: income={summary['totalIncome']}, "
        f"expenses={summary['totalExpenses']}, savings={summary['totalSavings']}"
    )
    return summary
