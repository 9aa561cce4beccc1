"""
Unit tests for wallet opening and admin balance adjustment
"""
import pytest
from decimal import Decimal
from src.database.models import Transaction
from src.services.wallets import adjust_wallet_balance, open_wallet
from src.utils.exceptions import InvalidInputError, NotFoundError, ValidationError


class TestOpenWallet:
    """Tests for opening wallets"""

    def test_opens_empty_wallet(self, test_db):
        wallet = open_wallet(test_db, 7)

        assert wallet.user_id == 7
        assert wallet.balance == Decimal("0.00")
        assert wallet.currency == "USD"

    def test_custom_currency(self, test_db):
        assert open_wallet(test_db, 7, "EUR").currency == "EUR"

    def test_one_wallet_per_user(self, test_db):
        open_wallet(test_db, 7)

        with pytest.raises(ValidationError):
            open_wallet(test_db, 7)

    def test_user_id_must_be_positive(self, test_db):
        with pytest.raises(ValidationError):
            open_wallet(test_db, 0)


class TestAdjustWalletBalance:
    """Tests for admin adjustments"""

    def test_increase_logged_as_deposit(self, test_db, wallet):
        adjusted = adjust_wallet_balance(test_db, wallet.id, "1500.00")

        assert adjusted.balance == Decimal("1500.00")
        entry = test_db.query(Transaction).one()
        assert entry.type == "deposit"
        assert entry.amount == Decimal("500.00")
        assert entry.description == "Admin wallet adjustment"
        assert entry.reference_id == str(wallet.id)

    def test_decrease_logged_as_withdrawal(self, test_db, wallet):
        adjust_wallet_balance(test_db, wallet.id, "250.25")

        entry = test_db.query(Transaction).one()
        assert entry.type == "withdrawal"
        assert entry.amount == Decimal("749.75")

    def test_same_balance_logs_nothing(self, test_db, wallet):
        adjust_wallet_balance(test_db, wallet.id, "1000.00")

        assert test_db.query(Transaction).count() == 0

    def test_negative_balance_refused(self, test_db, wallet):
        with pytest.raises(InvalidInputError):
            adjust_wallet_balance(test_db, wallet.id, "-1")

    def test_missing_wallet(self, test_db):
        with pytest.raises(NotFoundError):
            adjust_wallet_balance(test_db, 404, "10")
