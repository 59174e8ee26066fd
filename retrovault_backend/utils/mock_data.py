"""
Mock data generator used as the last seeding fallback
"""

import random
from datetime import datetime, timedelta, timezone

EXPENSE_CATEGORIES = ['Food', 'Transport', 'Entertainment', 'Shopping', 'Bills', 'Healthcare', 'Education', 'Travel']
INCOME_SOURCES = ['Salary', 'Freelance', 'Investment', 'Bonus', 'Side Hustle']
MERCHANTS = [
    'Amazon', 'Target', 'Walmart', 'Starbucks', "McDonald's", 'Shell', 'BP',
    'Uber', 'Netflix', 'Spotify', 'Apple', 'Google', 'Microsoft', 'Whole Foods',
    'CVS', 'Walgreens', 'Home Depot', "Lowe's", 'Best Buy', 'Costco', "Sam's Club",
]

MOCK_TRANSACTION_COUNT = 50
INCOME_PROBABILITY = 0.2


def generate_transactions(rng=None, count=MOCK_TRANSACTION_COUNT):
    """Random transactions over the last 30 days, newest first"""
    rng = rng or random.Random()
    today = datetime.now(timezone.utc).date()
    transactions = []

    for i in range(count):
        is_income = rng.random() < INCOME_PROBABILITY
        date = (today - timedelta(days=rng.randint(0, 29))).isoformat()

        if is_income:
            source = rng.choice(INCOME_SOURCES)
            transactions.append({
                'id': f'mock-tx-{i + 1}',
                'date': date,
                'category': source,
                'amount': rng.randint(500, 5000),
                'type': 'income',
                'description': f'{rng.choice(INCOME_SOURCES)} payment',
                'merchant': 'Employer',
                'accountId': 'mock-checking-001',
            })
        else:
            category = rng.choice(EXPENSE_CATEGORIES)
            transactions.append({
                'id': f'mock-tx-{i + 1}',
                'date': date,
                'category': category,
                'amount': rng.randint(5, 300),
                'type': 'expense',
                'description': f'{rng.choice(EXPENSE_CATEGORIES).lower()} purchase',
                'merchant': rng.choice(MERCHANTS),
                'accountId': 'mock-checking-001',
            })

    return sorted(transactions, key=lambda t: t['date'], reverse=True)


def generate_mock_data(rng=None):
    transactions = generate_transactions(rng)
    income = sum(t['amount'] for t in transactions if t['type'] == 'income')
    expenses = sum(t['amount'] for t in transactions if t['type'] == 'expense')
    return {
        'balance': income - expenses,
        'transactions': transactions,
    }
