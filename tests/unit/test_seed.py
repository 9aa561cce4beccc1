"""
Unit tests for database seeding helpers
"""
import random
from decimal import Decimal
from src.database.models import Deposit, Holding, InvestmentPlan, Transaction, Wallet
from src.database.seed import PLAN_CATALOG, create_plans, create_sample_activity, create_wallets


class TestSeed:
    """Tests for seed helpers against an in-memory database"""

    def test_create_plans(self, test_db):
        plans = create_plans(test_db)

        assert [p.name for p in plans] == [entry[0] for entry in PLAN_CATALOG]
        assert test_db.query(InvestmentPlan).filter(InvestmentPlan.name == "Growth").one().duration_days == 30

    def test_create_plans_again_adds_only_missing(self, test_db):
        """Re-seeding keeps one plan per catalog name"""
        create_plans(test_db)
        test_db.delete(test_db.query(InvestmentPlan).filter(InvestmentPlan.name == "Elite").one())
        test_db.commit()

        added = create_plans(test_db)

        assert [p.name for p in added] == ["Elite"]
        assert test_db.query(InvestmentPlan).count() == len(PLAN_CATALOG)

    def test_wallet_funding_goes_through_ledger(self, test_db):
        random.seed(7)

        wallets = create_wallets(test_db, [1, 2])

        assert len(wallets) == 2
        for wallet in test_db.query(Wallet).all():
            entry = test_db.query(Transaction).filter(Transaction.user_id == wallet.user_id).one()
            assert entry.type == "deposit"
            assert entry.amount == wallet.balance
            assert wallet.balance >= Decimal("2000.00")

    def test_sample_activity(self, test_db):
        random.seed(7)
        create_wallets(test_db, [1, 2, 3])

        create_sample_activity(test_db, [1, 2, 3])

        assert test_db.query(Holding).count() == 6
        assert test_db.query(Deposit).filter(Deposit.status == "pending").count() == 3
        assert all(w.balance >= 0 for w in test_db.query(Wallet).all())
