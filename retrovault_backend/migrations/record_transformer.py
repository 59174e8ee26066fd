"""
Record Transformer - old nested shapes to new flat shapes

Pure functions, one per entity kind. They never raise: missing or malformed
fields fall back to the defaults below so one bad record cannot fail a batch.
"""

from datetime import timedelta
from typing import Any, Dict, List, Optional

from retrovault_backend.config import environment
from retrovault_backend.models import (
    Account,
    Budget,
    Goal,
    OldAccount,
    OldGoal,
    OldTransaction,
    OldUserData,
    Transaction,
    TRANSACTION_TYPE_ALIASES,
    UserProfile,
    as_mapping,
    as_number,
    utc_now,
)

GOAL_DEFAULT_HORIZON = timedelta(days=365)


def normalize_transaction_type(value: Optional[str]) -> str:
    """Map legacy deposit/withdrawal types onto income/expense"""
    if not value:
        return 'expense'
    return TRANSACTION_TYPE_ALIASES.get(value, value)


def transform_user_profile(user_id: str, old_data: Optional[Dict[str, Any]], now=None) -> UserProfile:
    old = OldUserData.from_dict(old_data)
    return UserProfile(
        name=old.name or 'User',
        email=old.email or '',
        photo_url=old.photo_url,
        total_balance=old.balance or 0,
        data_source=old.data_source or 'Migration',
        currency=environment.DEFAULT_CURRENCY,
        timezone=environment.DEFAULT_TIMEZONE,
        created_at=now or utc_now(),
    )


def transform_account(user_id: str, doc_id: str, data: Optional[Dict[str, Any]], now=None) -> Account:
    old = OldAccount.from_dict(doc_id, data)
    return Account(
        user_id=user_id,
        nessie_id=old.id,
        name=old.name or old.type or 'Account',
        type=old.type or 'Checking',
        balance=old.balance or 0,
        created_at=now or utc_now(),
    )


def transform_transaction(user_id: str, doc_id: str, data: Optional[Dict[str, Any]], now=None) -> Transaction:
    old = OldTransaction.from_dict(doc_id, data)
    now = now or utc_now()
    return Transaction(
        user_id=user_id,
        account_id=old.account_id or 'default',
        nessie_id=old.id,
        amount=old.amount or 0,
        type=normalize_transaction_type(old.type),
        category=old.category or 'Other',
        description=old.description or 'Transaction',
        merchant=old.merchant,
        date=old.date or now,
        created_at=now,
    )


def transform_budget_entries(user_id: str, data: Optional[Dict[str, Any]], now=None) -> List[Budget]:
    """
    Turn a {category: amount} settings document into Budget records.

    Entries whose amount is not a number, or is zero or negative, are skipped.
    """
    now = now or utc_now()
    budgets = []
    for category, amount in as_mapping(data).items():
        amount = as_number(amount)
        if amount is None or amount <= 0:
            continue
        budgets.append(Budget(
            user_id=user_id,
            category=category,
            amount=amount,
            created_at=now,
        ))
    return budgets


def transform_goal(user_id: str, doc_id: str, data: Optional[Dict[str, Any]], now=None) -> Goal:
    old = OldGoal.from_dict(doc_id, data)
    now = now or utc_now()
    return Goal(
        user_id=user_id,
        title=old.title or 'Financial Goal',
        description=old.description or '',
        target_amount=old.target_amount or 0,
        current_amount=old.current_amount or 0,
        target_date=old.target_date or (now + GOAL_DEFAULT_HORIZON),
        category=old.category or 'Savings',
        priority=old.priority or 'Medium',
        created_at=now,
    )
