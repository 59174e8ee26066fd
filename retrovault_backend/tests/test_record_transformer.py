"""
Unit Tests for the Record Transformer
Old nested records must always produce fully populated flat records
"""

import unittest
from datetime import datetime, timedelta, timezone

from retrovault_backend.migrations.record_transformer import (
    normalize_transaction_type,
    transform_account,
    transform_budget_entries,
    transform_goal,
    transform_transaction,
    transform_user_profile,
)

NOW = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)


class TestAccountTransform(unittest.TestCase):
    """Account defaults and field mapping"""

    def test_missing_fields_get_defaults(self):
        """
        Scenario: Old account document is empty
        Expected: name 'Account', type 'Checking', balance 0
        """
        account = transform_account('user-1', 'acc-1', {}, now=NOW).to_document()

        self.assertEqual(account['name'], 'Account')
        self.assertEqual(account['type'], 'Checking')
        self.assertEqual(account['balance'], 0)
        self.assertEqual(account['userId'], 'user-1')
        self.assertEqual(account['nessieId'], 'acc-1')

    def test_name_falls_back_to_type(self):
        account = transform_account('user-1', 'acc-1', {'type': 'Savings', 'balance': 250}, now=NOW)

        self.assertEqual(account.name, 'Savings')
        self.assertEqual(account.type, 'Savings')
        self.assertEqual(account.balance, 250)

    def test_fixed_fields(self):
        account = transform_account('user-1', 'acc-1', {'name': 'Main'}, now=NOW).to_document()

        self.assertTrue(account['isActive'])
        self.assertEqual(account['institution'], 'Migrated Account')
        self.assertIsNone(account['accountNumber'])
        self.assertIsNone(account['routingNumber'])
        self.assertEqual(account['metadata']['syncSource'], 'migration')
        self.assertEqual(account['createdAt'], NOW)
        self.assertEqual(account['lastUpdated'], NOW)

    def test_malformed_values_are_defaulted(self):
        """
        Scenario: Fields hold values of the wrong type
        Expected: No exception, defaults substituted
        """
        account = transform_account('user-1', 'acc-1', {'name': 42, 'type': None, 'balance': 'lots'}, now=NOW)

        self.assertEqual(account.name, 'Account')
        self.assertEqual(account.type, 'Checking')
        self.assertEqual(account.balance, 0)

    def test_none_document(self):
        account = transform_account('user-1', 'acc-1', None, now=NOW)
        self.assertEqual(account.name, 'Account')


class TestTransactionTransform(unittest.TestCase):
    """Transaction defaults and legacy type synonyms"""

    def test_missing_fields_get_defaults(self):
        transaction = transform_transaction('user-1', 'tx-1', {}, now=NOW).to_document()

        self.assertEqual(transaction['accountId'], 'default')
        self.assertEqual(transaction['amount'], 0)
        self.assertEqual(transaction['type'], 'expense')
        self.assertEqual(transaction['category'], 'Other')
        self.assertEqual(transaction['description'], 'Transaction')
        self.assertIsNone(transaction['merchant'])
        self.assertEqual(transaction['date'], NOW)
        self.assertEqual(transaction['nessieId'], 'tx-1')
        self.assertFalse(transaction['isRecurring'])
        self.assertEqual(transaction['tags'], [])
        self.assertIsNone(transaction['subcategory'])

    def test_fields_are_carried_over(self):
        transaction = transform_transaction('user-1', 'tx-1', {
            'accountId': 'acc-9',
            'amount': 42.5,
            'type': 'income',
            'category': 'Salary',
            'description': 'Payroll',
            'merchant': 'Employer',
            'date': '2025-01-01',
        }, now=NOW)

        self.assertEqual(transaction.account_id, 'acc-9')
        self.assertEqual(transaction.amount, 42.5)
        self.assertEqual(transaction.type, 'income')
        self.assertEqual(transaction.category, 'Salary')
        self.assertEqual(transaction.merchant, 'Employer')
        self.assertEqual(transaction.date, '2025-01-01')

    def test_legacy_types_are_normalized(self):
        deposit = transform_transaction('user-1', 'tx-1', {'type': 'deposit', 'amount': 10}, now=NOW)
        withdrawal = transform_transaction('user-1', 'tx-2', {'type': 'withdrawal', 'amount': 5}, now=NOW)

        self.assertEqual(deposit.type, 'income')
        self.assertEqual(withdrawal.type, 'expense')

    def test_normalize_transaction_type(self):
        self.assertEqual(normalize_transaction_type(None), 'expense')
        self.assertEqual(normalize_transaction_type(''), 'expense')
        self.assertEqual(normalize_transaction_type('income'), 'income')
        self.assertEqual(normalize_transaction_type('transfer'), 'transfer')

    def test_boolean_amount_is_not_a_number(self):
        transaction = transform_transaction('user-1', 'tx-1', {'amount': True}, now=NOW)
        self.assertEqual(transaction.amount, 0)


class TestBudgetTransform(unittest.TestCase):
    """Budget entries from the settings/budgets document"""

    def test_skips_non_positive_and_non_numeric_entries(self):
        """
        Scenario: {Food: 200, Transport: -5, Shopping: "n/a", Bills: 0}
        Expected: Exactly one Food budget of 200
        """
        budgets = transform_budget_entries('user-1', {
            'Food': 200,
            'Transport': -5,
            'Shopping': 'n/a',
            'Bills': 0,
        }, now=NOW)

        self.assertEqual(len(budgets), 1)
        document = budgets[0].to_document()
        self.assertEqual(document['category'], 'Food')
        self.assertEqual(document['amount'], 200)
        self.assertEqual(document['period'], 'monthly')
        self.assertTrue(document['isActive'])
        self.assertEqual(document['userId'], 'user-1')

    def test_empty_document(self):
        self.assertEqual(transform_budget_entries('user-1', {}), [])
        self.assertEqual(transform_budget_entries('user-1', None), [])


class TestGoalTransform(unittest.TestCase):

    def test_missing_fields_get_defaults(self):
        goal = transform_goal('user-1', 'goal-1', {}, now=NOW).to_document()

        self.assertEqual(goal['title'], 'Financial Goal')
        self.assertEqual(goal['description'], '')
        self.assertEqual(goal['targetAmount'], 0)
        self.assertEqual(goal['currentAmount'], 0)
        self.assertEqual(goal['targetDate'], NOW + timedelta(days=365))
        self.assertEqual(goal['category'], 'Savings')
        self.assertEqual(goal['priority'], 'Medium')
        self.assertFalse(goal['isCompleted'])

    def test_fields_are_carried_over(self):
        goal = transform_goal('user-1', 'goal-1', {
            'title': 'Vacation',
            'targetAmount': 3000,
            'currentAmount': 450,
            'targetDate': '2025-08-01',
            'priority': 'High',
        }, now=NOW)

        self.assertEqual(goal.title, 'Vacation')
        self.assertEqual(goal.target_amount, 3000)
        self.assertEqual(goal.current_amount, 450)
        self.assertEqual(goal.target_date, '2025-08-01')
        self.assertEqual(goal.priority, 'High')


class TestUserProfileTransform(unittest.TestCase):

    def test_profile_shape(self):
        profile = transform_user_profile('user-1', {
            'name': 'Alice',
            'email': 'alice@example.com',
            'balance': 100,
            'dataSource': 'Nessie',
        }, now=NOW).to_document()

        self.assertEqual(profile['profile']['name'], 'Alice')
        self.assertEqual(profile['profile']['email'], 'alice@example.com')
        self.assertIsNone(profile['profile']['photoURL'])
        self.assertEqual(profile['financialSummary']['totalBalance'], 100)
        self.assertEqual(profile['financialSummary']['totalIncome'], 0)
        self.assertEqual(profile['dataSource'], 'Nessie')
        self.assertEqual(profile['metadata']['dataVersion'], '2.0')
        self.assertEqual(profile['syncStatus']['version'], 1)
        self.assertTrue(profile['syncStatus']['isConsistent'])
        self.assertEqual(len(profile['preferences']['categories']), 9)
        self.assertTrue(profile['preferences']['notifications']['budgetAlerts'])

    def test_missing_fields_get_defaults(self):
        profile = transform_user_profile('user-1', None, now=NOW).to_document()

        self.assertEqual(profile['profile']['name'], 'User')
        self.assertEqual(profile['profile']['email'], '')
        self.assertEqual(profile['financialSummary']['totalBalance'], 0)
        self.assertEqual(profile['dataSource'], 'Migration')

    def test_already_migrated_profile_keeps_identity(self):
        """
        Scenario: users/{uid} already has the unified shape
        Expected: Name and email are read from the nested profile map
        """
        profile = transform_user_profile('user-1', {
            'profile': {'name': 'Bob', 'email': 'bob@example.com'},
            'metadata': {'dataVersion': '2.0'},
        }, now=NOW)

        self.assertEqual(profile.name, 'Bob')
        self.assertEqual(profile.email, 'bob@example.com')


if __name__ == '__main__':
    unittest.main()
