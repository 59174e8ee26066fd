from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Any


# ==================== COLLECTIONS ====================

USERS_COLLECTION = 'users'
ACCOUNTS_COLLECTION = 'accounts'
TRANSACTIONS_COLLECTION = 'transactions'
BUDGETS_COLLECTION = 'budgets'
GOALS_COLLECTION = 'goals'
CATEGORIES_COLLECTION = 'categories'
MIGRATION_STATUS_COLLECTION = 'migration_status'
SAMPLE_PROFILES_COLLECTION = 'sampleProfiles'

# Old nested layout: users/{uid}/<subcollection>
OLD_ACCOUNTS_SUBCOLLECTION = 'accounts'
OLD_TRANSACTIONS_SUBCOLLECTION = 'transactions'
OLD_GOALS_SUBCOLLECTION = 'goals'
OLD_SETTINGS_SUBCOLLECTION = 'settings'
OLD_BUDGETS_DOCUMENT = 'budgets'

# Flat collections owned by a user through the userId field
USER_OWNED_COLLECTIONS = [
    ACCOUNTS_COLLECTION,
    TRANSACTIONS_COLLECTION,
    BUDGETS_COLLECTION,
    GOALS_COLLECTION,
]

DATA_VERSION = '2.0'

DEFAULT_PREFERENCE_CATEGORIES = [
    'Food', 'Transport', 'Entertainment', 'Shopping',
    'Bills', 'Healthcare', 'Education', 'Travel', 'Other'
]

# Legacy transaction types written by older sync paths
TRANSACTION_TYPE_ALIASES = {
    'deposit': 'income',
    'withdrawal': 'expense',
}
INCOME_TYPES = ('income', 'deposit')
EXPENSE_TYPES = ('expense', 'withdrawal')


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_text(value: Any) -> Optional[str]:
    """Return value if it is a non-empty string, else None"""
    if isinstance(value, str) and value:
        return value
    return None


def as_number(value: Any) -> Optional[float]:
    """Return value if it is a real number (bools excluded), else None"""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    return None


def as_date(value: Any) -> Optional[Any]:
    """Dates are kept as stored: datetimes or non-empty date strings"""
    if isinstance(value, datetime):
        return value
    return as_text(value)


def as_mapping(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


class MigrationStatus(Enum):
    """Per-user migration state, derived from metadata.dataVersion"""
    PENDING = 'pending'
    MIGRATED = 'migrated'

    @classmethod
    def from_profile(cls, profile: Optional[Dict[str, Any]]) -> 'MigrationStatus':
        if not profile:
            return cls.PENDING
        metadata = as_mapping(profile.get('metadata'))
        if metadata.get('dataVersion') == DATA_VERSION:
            return cls.MIGRATED
        return cls.PENDING


@dataclass
class MigrationResult:
    """Outcome of one per-entity migrator: count plus the written documents"""
    count: int = 0
    records: List[Dict[str, Any]] = field(default_factory=list)
    skipped: int = 0


# ==================== OLD (NESTED) SHAPES ====================
# Every field is optional; from_dict() drops values of the wrong type.

@dataclass
class OldUserData:
    name: Optional[str] = None
    email: Optional[str] = None
    photo_url: Optional[str] = None
    balance: Optional[float] = None
    data_source: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'OldUserData':
        data = as_mapping(data)
        # Already-migrated documents keep identity under 'profile'
        profile = as_mapping(data.get('profile'))
        return cls(
            name=as_text(data.get('name')) or as_text(profile.get('name')),
            email=as_text(data.get('email')) or as_text(profile.get('email')),
            photo_url=as_text(data.get('photoURL')) or as_text(profile.get('photoURL')),
            balance=as_number(data.get('balance')),
            data_source=as_text(data.get('dataSource')),
        )


@dataclass
class OldAccount:
    id: str
    name: Optional[str] = None
    type: Optional[str] = None
    balance: Optional[float] = None

    @classmethod
    def from_dict(cls, doc_id: str, data: Optional[Dict[str, Any]]) -> 'OldAccount':
        data = as_mapping(data)
        return cls(
            id=doc_id,
            name=as_text(data.get('name')),
            type=as_text(data.get('type')),
            balance=as_number(data.get('balance')),
        )


@dataclass
class OldTransaction:
    id: str
    account_id: Optional[str] = None
    amount: Optional[float] = None
    type: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None
    merchant: Optional[str] = None
    date: Optional[Any] = None

    @classmethod
    def from_dict(cls, doc_id: str, data: Optional[Dict[str, Any]]) -> 'OldTransaction':
        data = as_mapping(data)
        return cls(
            id=doc_id,
            account_id=as_text(data.get('accountId')),
            amount=as_number(data.get('amount')),
            type=as_text(data.get('type')),
            category=as_text(data.get('category')),
            description=as_text(data.get('description')),
            merchant=as_text(data.get('merchant')),
            date=as_date(data.get('date')),
        )


@dataclass
class OldGoal:
    id: str
    title: Optional[str] = None
    description: Optional[str] = None
    target_amount: Optional[float] = None
    current_amount: Optional[float] = None
    target_date: Optional[Any] = None
    category: Optional[str] = None
    priority: Optional[str] = None

    @classmethod
    def from_dict(cls, doc_id: str, data: Optional[Dict[str, Any]]) -> 'OldGoal':
        data = as_mapping(data)
        return cls(
            id=doc_id,
            title=as_text(data.get('title')),
            description=as_text(data.get('description')),
            target_amount=as_number(data.get('targetAmount')),
            current_amount=as_number(data.get('currentAmount')),
            target_date=as_date(data.get('targetDate')),
            category=as_text(data.get('category')),
            priority=as_text(data.get('priority')),
        )


# ==================== NEW (FLAT) SHAPES ====================
# Every field is populated; to_document() gives the stored Firestore shape.

@dataclass
class UserProfile:
    name: str
    email: str
    photo_url: Optional[str]
    total_balance: float
    data_source: str
    currency: str
    timezone: str
    total_income: float = 0
    total_expenses: float = 0
    total_savings: float = 0
    accounts_count: int = 0
    transactions_count: int = 0
    data_version: str = DATA_VERSION
    categories: List[str] = field(default_factory=lambda: list(DEFAULT_PREFERENCE_CATEGORIES))
    created_at: datetime = field(default_factory=utc_now)

    def to_document(self) -> Dict[str, Any]:
        return {
            'profile': {
                'name': self.name,
                'email': self.email,
                'photoURL': self.photo_url,
                'createdAt': self.created_at,
                'lastLogin': self.created_at,
            },
            'financialSummary': {
                'totalBalance': self.total_balance,
                'totalIncome': self.total_income,
                'totalExpenses': self.total_expenses,
                'totalSavings': self.total_savings,
                'lastUpdated': self.created_at,
            },
            'dataSource': self.data_source,
            'syncStatus': {
                'lastSync': self.created_at,
                'isConsistent': True,
                'needsRefresh': False,
                'version': 1,
            },
            'preferences': {
                'currency': self.currency,
                'timezone': self.timezone,
                'categories': list(self.categories),
                'notifications': {
                    'budgetAlerts': True,
                    'goalReminders': True,
                    'weeklyReports': True,
                },
            },
            'metadata': {
                'accountsCount': self.accounts_count,
                'transactionsCount': self.transactions_count,
                'lastDataUpdate': self.created_at,
                'dataVersion': self.data_version,
            },
        }


@dataclass
class Account:
    user_id: str
    nessie_id: str
    name: str
    type: str
    balance: float
    institution: str = 'Migrated Account'
    sync_source: str = 'migration'
    is_active: bool = True
    account_number: Optional[str] = None
    routing_number: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)

    def to_document(self) -> Dict[str, Any]:
        return {
            'userId': self.user_id,
            'nessieId': self.nessie_id,
            'name': self.name,
            'type': self.type,
            'balance': self.balance,
            'isActive': self.is_active,
            'institution': self.institution,
            'accountNumber': self.account_number,
            'routingNumber': self.routing_number,
            'createdAt': self.created_at,
            'lastUpdated': self.created_at,
            'metadata': {
                'syncSource': self.sync_source,
                'lastSync': self.created_at,
            },
        }


@dataclass
class Transaction:
    user_id: str
    account_id: str
    nessie_id: str
    amount: float
    type: str
    category: str
    description: str
    merchant: Optional[str]
    date: Any
    subcategory: Optional[str] = None
    is_recurring: bool = False
    tags: List[str] = field(default_factory=list)
    sync_source: str = 'migration'
    created_at: datetime = field(default_factory=utc_now)

    def to_document(self) -> Dict[str, Any]:
        return {
            'userId': self.user_id,
            'accountId': self.account_id,
            'nessieId': self.nessie_id,
            'amount': self.amount,
            'type': self.type,
            'category': self.category,
            'subcategory': self.subcategory,
            'description': self.description,
            'merchant': self.merchant,
            'date': self.date,
            'isRecurring': self.is_recurring,
            'tags': list(self.tags),
            'metadata': {
                'location': None,
                'paymentMethod': None,
                'notes': None,
                'syncSource': self.sync_source,
            },
            'createdAt': self.created_at,
            'lastUpdated': self.created_at,
        }


@dataclass
class Budget:
    user_id: str
    category: str
    amount: float
    period: str = 'monthly'
    is_active: bool = True
    created_at: datetime = field(default_factory=utc_now)

    def to_document(self) -> Dict[str, Any]:
        return {
            'userId': self.user_id,
            'category': self.category,
            'amount': self.amount,
            'period': self.period,
            'isActive': self.is_active,
            'createdAt': self.created_at,
            'lastUpdated': self.created_at,
        }


@dataclass
class Goal:
    user_id: str
    title: str
    description: str
    target_amount: float
    current_amount: float
    target_date: Any
    category: str
    priority: str
    is_completed: bool = False
    created_at: datetime = field(default_factory=utc_now)

    def to_document(self) -> Dict[str, Any]:
        return {
            'userId': self.user_id,
            'title': self.title,
            'description': self.description,
            'targetAmount': self.target_amount,
            'currentAmount': self.current_amount,
            'targetDate': self.target_date,
            'category': self.category,
            'priority': self.priority,
            'isCompleted': self.is_completed,
            'createdAt': self.created_at,
            'lastUpdated': self.created_at,
        }


@dataclass
class Category:
    name: str
    color: str
    icon: str
    subcategories: List[str]
    keywords: List[str]
    priority: int
    type: str = 'expense'
    is_default: bool = True
    auto_assign: bool = True

    def to_document(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'type': self.type,
            'color': self.color,
            'icon': self.icon,
            'isDefault': self.is_default,
            'subcategories': list(self.subcategories),
            'rules': {
                'keywords': list(self.keywords),
                'autoAssign': self.auto_assign,
                'priority': self.priority,
            },
        }


DEFAULT_CATEGORIES = [
    Category('Food', '#FF6B6B', '🍽️',
             ['Groceries', 'Restaurants', 'Coffee', 'Takeout'],
             ['food', 'restaurant', 'grocery', 'coffee', 'dining'], 1),
    Category('Transport', '#4ECDC4', '🚗',
             ['Gas', 'Public Transport', 'Uber', 'Lyft', 'Parking'],
             ['gas', 'fuel', 'uber', 'lyft', 'transport', 'parking'], 2),
    Category('Entertainment', '#45B7D1', '🎬',
             ['Movies', 'Streaming', 'Games', 'Events'],
             ['entertainment', 'movie', 'netflix', 'spotify', 'game'], 3),
    Category('Shopping', '#96CEB4', '🛍️',
             ['Clothing', 'Electronics', 'Amazon', 'Retail'],
             ['shopping', 'amazon', 'store', 'retail', 'clothing'], 4),
    Category('Bills', '#FFEAA7', '💡',
             ['Electric', 'Water', 'Internet', 'Phone', 'Rent'],
             ['bill', 'utility', 'electric', 'water', 'internet', 'phone'], 5),
    Category('Healthcare', '#DDA0DD', '🏥',
             ['Doctor', 'Pharmacy', 'Insurance', 'Medical'],
             ['medical', 'doctor', 'pharmacy', 'health', 'hospital'], 6),
    Category('Education', '#98D8C8', '📚',
             ['Books', 'Courses', 'School', 'Training'],
             ['education', 'school', 'course', 'book', 'training'], 7),
    Category('Travel', '#F7DC6F', '✈️',
             ['Flights', 'Hotels', 'Vacation', 'Transport'],
             ['travel', 'hotel', 'flight', 'vacation', 'trip'], 8),
    Category('Other', '#95A5A6', '📦',
             ['Miscellaneous', 'Unknown'],
             [], 9, auto_assign=False),
]
