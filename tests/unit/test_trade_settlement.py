"""
Unit tests for trade settlement against an in-memory database
"""
import pytest
from decimal import Decimal
from unittest.mock import patch
from sqlalchemy.exc import SQLAlchemyError
from src.database.models import Holding, Trade, Transaction, Wallet
from src.services.price_source import PriceSource
from src.services.trade_settlement import execute_buy, execute_sell, refresh_holding_prices
from src.utils.exceptions import (
    DatabaseQueryError,
    InsufficientFundsError,
    InsufficientHoldingsError,
    InvalidInputError,
    NoSuchHoldingError,
    NotFoundError,
    ValidationError,
)


def _balance(db, user_id=1):
    return db.query(Wallet).filter(Wallet.user_id == user_id).one().balance


def _holding(db, symbol="AAPL", user_id=1):
    return db.query(Holding).filter(Holding.user_id == user_id, Holding.symbol == symbol).first()


class RecordingPriceSource(PriceSource):
    """Notes whether a database transaction is open during each lookup"""

    def __init__(self, db, prices):
        self.db = db
        self.prices = prices
        self.lookups = []

    def get_price(self, asset_type, symbol):
        self.lookups.append((asset_type, symbol, self.db.in_transaction()))
        return self.prices.get_price(asset_type, symbol)


class TestExecuteBuy:
    """Tests for buying"""

    def test_first_buy_debits_cost_plus_fee_and_opens_holding(self, test_db, wallet):
        """Buying 2 @ 100 from 1000 leaves 799.80 and a 2-unit holding at 100"""
        trade = execute_buy(test_db, 1, "stock", "AAPL", "Apple Inc.", 2, 100)

        assert _balance(test_db) == Decimal("799.80")
        assert trade.trade_type == "buy"
        assert trade.total_amount == Decimal("200.00")
        assert trade.fee == Decimal("0.20")
        assert trade.status == "executed"

        holding = _holding(test_db)
        assert holding.quantity == Decimal("2")
        assert holding.average_price == Decimal("100.00")
        assert holding.total_cost == Decimal("200.00")
        assert holding.current_value == Decimal("200.00")
        assert holding.profit_loss == Decimal("0.00")

    def test_buy_logs_trade_buy_transaction(self, test_db, wallet):
        """The debit is logged with the fee included and references the trade"""
        trade = execute_buy(test_db, 1, "stock", "AAPL", "Apple Inc.", 2, 100)

        entries = test_db.query(Transaction).all()
        assert len(entries) == 1
        assert entries[0].type == "trade_buy"
        assert entries[0].amount == Decimal("200.20")
        assert entries[0].status == "completed"
        assert entries[0].reference_id == str(trade.id)
        assert entries[0].description == "Bought 2.00000000 AAPL at $100.00"

    def test_second_buy_reaverages_holding(self, test_db, make_wallet):
        """Buying 2 @ 100 then 2 @ 200 gives 4 units at an average of 150"""
        make_wallet(user_id=1, balance="1000.00")
        execute_buy(test_db, 1, "stock", "AAPL", "Apple Inc.", 2, 100)
        execute_buy(test_db, 1, "stock", "AAPL", "Apple Inc.", 2, 200)

        holding = _holding(test_db)
        assert holding.quantity == Decimal("4")
        assert holding.average_price == Decimal("150.00")
        assert holding.total_cost == Decimal("600.00")
        assert holding.current_price == Decimal("200.00")
        assert holding.current_value == Decimal("800.00")
        assert holding.profit_loss == Decimal("200.00")
        assert holding.profit_loss_pct == Decimal("33.33")
        assert _balance(test_db) == Decimal("399.40")
        assert test_db.query(Holding).count() == 1

    @pytest.mark.parametrize("buys,quantity,average_price,total_cost", [
        ([(1, 100), (3, 200), (4, 50)], "8", "112.50", "900.00"),
        ([(2, 10), (2, 20), (1, 30), (5, 6)], "10", "12.00", "120.00"),
        ([("0.5", 100), ("1.5", 300), (2, 150)], "4", "200.00", "800.00"),
    ])
    def test_buy_sequence_averages_by_quantity(self, test_db, make_wallet, buys, quantity, average_price, total_cost):
        """Average price is total cost over total quantity after any run of buys"""
        make_wallet(user_id=1, balance="10000.00")
        for qty, price in buys:
            execute_buy(test_db, 1, "crypto", "ETH", "Ethereum", qty, price)

        holding = _holding(test_db, "ETH")
        assert holding.quantity == Decimal(quantity)
        assert holding.average_price == Decimal(average_price)
        assert holding.total_cost == Decimal(total_cost)
        assert test_db.query(Trade).count() == len(buys)

    def test_buy_exceeding_balance_changes_nothing(self, test_db, wallet):
        """10 @ 100 costs 1001.00, more than the 1000.00 available"""
        with pytest.raises(InsufficientFundsError) as exc_info:
            execute_buy(test_db, 1, "stock", "AAPL", "Apple Inc.", 10, 100)

        assert exc_info.value.required == Decimal("1001.00")
        assert exc_info.value.available == Decimal("1000.00")
        assert exc_info.value.details() == {"required": "1001.00", "available": "1000.00"}
        assert _balance(test_db) == Decimal("1000.00")
        assert test_db.query(Trade).count() == 0
        assert test_db.query(Holding).count() == 0
        assert test_db.query(Transaction).count() == 0

    def test_buy_spending_exact_balance_succeeds(self, test_db, make_wallet):
        """A balance equal to the total cost is enough"""
        make_wallet(user_id=1, balance="100.10")
        execute_buy(test_db, 1, "stock", "AAPL", "Apple Inc.", 1, 100)

        assert _balance(test_db) == Decimal("0.00")

    def test_quantity_rounded_to_eight_places(self, test_db, wallet):
        """Quantities beyond 8 decimal places are rounded half up"""
        execute_buy(test_db, 1, "crypto", "BTC", "Bitcoin", "0.123456789", 100)

        assert _holding(test_db, "BTC").quantity == Decimal("0.12345679")

    def test_buy_without_wallet(self, test_db):
        """A user without a wallet cannot trade"""
        with pytest.raises(NotFoundError):
            execute_buy(test_db, 42, "stock", "AAPL", "Apple Inc.", 1, 100)

    @pytest.mark.parametrize("quantity,price", [(0, 100), (-1, 100), (1, 0), (1, -5), ("abc", 100)])
    def test_non_positive_or_malformed_order(self, test_db, wallet, quantity, price):
        """Quantity and price must be positive numbers"""
        with pytest.raises(ValidationError):
            execute_buy(test_db, 1, "stock", "AAPL", "Apple Inc.", quantity, price)

        assert _balance(test_db) == Decimal("1000.00")

    def test_unknown_asset_type(self, test_db, wallet):
        """Only stock and crypto can be traded"""
        with pytest.raises(InvalidInputError):
            execute_buy(test_db, 1, "bond", "UST", "Treasury", 1, 100)

    def test_missing_symbol(self, test_db, wallet):
        """Symbol and asset name are required"""
        with pytest.raises(ValidationError):
            execute_buy(test_db, 1, "stock", "", "Apple Inc.", 1, 100)

    def test_failure_after_debit_rolls_back_everything(self, test_db, wallet):
        """A failure while logging leaves no partial writes"""
        with patch("src.services.trade_settlement.record_transaction", side_effect=RuntimeError("boom")):
            with pytest.raises(RuntimeError):
                execute_buy(test_db, 1, "stock", "AAPL", "Apple Inc.", 2, 100)

        assert _balance(test_db) == Decimal("1000.00")
        assert test_db.query(Trade).count() == 0
        assert test_db.query(Holding).count() == 0

    def test_database_error_becomes_query_error(self, test_db, wallet):
        """SQLAlchemy failures surface as DatabaseQueryError after rollback"""
        with patch("src.services.trade_settlement.record_transaction", side_effect=SQLAlchemyError("disk full")):
            with pytest.raises(DatabaseQueryError):
                execute_buy(test_db, 1, "stock", "AAPL", "Apple Inc.", 2, 100)

        assert _balance(test_db) == Decimal("1000.00")


class TestExecuteSell:
    """Tests for selling"""

    @pytest.fixture
    def position(self, test_db, make_wallet):
        """4 AAPL at an average of 150, 399.40 cash left"""
        make_wallet(user_id=1, balance="1000.00")
        execute_buy(test_db, 1, "stock", "AAPL", "Apple Inc.", 2, 100)
        execute_buy(test_db, 1, "stock", "AAPL", "Apple Inc.", 2, 200)
        return _holding(test_db)

    def test_partial_sell_keeps_average_price(self, test_db, position):
        """Selling 1 @ 200 credits 199.80 and keeps the average at 150"""
        trade = execute_sell(test_db, 1, "stock", "AAPL", "Apple Inc.", 1, 200)

        assert trade.trade_type == "sell"
        assert trade.fee == Decimal("0.20")
        assert _balance(test_db) == Decimal("599.20")

        holding = _holding(test_db)
        assert holding.quantity == Decimal("3")
        assert holding.average_price == Decimal("150.00")
        assert holding.total_cost == Decimal("450.00")
        assert holding.current_value == Decimal("600.00")
        assert holding.profit_loss == Decimal("150.00")
        assert holding.profit_loss_pct == Decimal("33.33")

    def test_full_sell_deletes_holding(self, test_db, position):
        """Selling the whole position closes it"""
        execute_sell(test_db, 1, "stock", "AAPL", "Apple Inc.", 4, 150)

        assert _holding(test_db) is None
        assert _balance(test_db) == Decimal("998.80")

    def test_sell_leaving_dust_deletes_holding(self, test_db, wallet):
        """A remainder of one hundred-millionth of a unit is not kept"""
        execute_buy(test_db, 1, "crypto", "BTC", "Bitcoin", "1.00000001", 100)
        execute_sell(test_db, 1, "crypto", "BTC", "Bitcoin", 1, 100)

        assert _holding(test_db, "BTC") is None

    def test_sell_logs_net_proceeds(self, test_db, position):
        """The credit is logged net of the fee"""
        trade = execute_sell(test_db, 1, "stock", "AAPL", "Apple Inc.", 1, 200)

        entry = test_db.query(Transaction).filter(Transaction.type == "trade_sell").one()
        assert entry.amount == Decimal("199.80")
        assert entry.reference_id == str(trade.id)

    def test_sell_without_holding(self, test_db, wallet):
        """Selling an asset never bought fails without side effects"""
        with pytest.raises(NoSuchHoldingError) as exc_info:
            execute_sell(test_db, 1, "stock", "TSLA", "Tesla", 1, 100)

        assert "TSLA" in exc_info.value.message
        assert _balance(test_db) == Decimal("1000.00")
        assert test_db.query(Trade).count() == 0

    def test_sell_more_than_held(self, test_db, position):
        """Selling 5 of 4 fails and leaves the position untouched"""
        with pytest.raises(InsufficientHoldingsError) as exc_info:
            execute_sell(test_db, 1, "stock", "AAPL", "Apple Inc.", 5, 150)

        assert exc_info.value.available == Decimal("4")
        assert _holding(test_db).quantity == Decimal("4")
        assert _balance(test_db) == Decimal("399.40")

    def test_sell_same_symbol_other_asset_type(self, test_db, position):
        """Holdings are keyed by asset type as well as symbol"""
        with pytest.raises(NoSuchHoldingError):
            execute_sell(test_db, 1, "crypto", "AAPL", "Apple Inc.", 1, 150)


class TestRefreshHoldingPrices:
    """Tests for holding revaluation"""

    def test_revalues_known_assets(self, test_db, wallet, static_prices):
        """AAPL bought at 100 and now 120 shows a 20% gain"""
        execute_buy(test_db, 1, "stock", "AAPL", "Apple Inc.", 2, 100)

        holdings = refresh_holding_prices(test_db, 1, static_prices)

        assert len(holdings) == 1
        holding = _holding(test_db)
        assert holding.current_price == Decimal("120.00")
        assert holding.current_value == Decimal("240.00")
        assert holding.profit_loss == Decimal("40.00")
        assert holding.profit_loss_pct == Decimal("20.00")

    def test_unknown_price_leaves_holding_untouched(self, test_db, wallet, static_prices):
        """An asset the source does not track keeps its last valuation"""
        execute_buy(test_db, 1, "stock", "JNJ", "Johnson & Johnson", 1, 150)

        refresh_holding_prices(test_db, 1, static_prices)

        holding = _holding(test_db, "JNJ")
        assert holding.current_price == Decimal("150.00")
        assert holding.current_value == Decimal("150.00")

    def test_other_users_untouched(self, test_db, make_wallet, static_prices):
        """Only the requested user's holdings are revalued"""
        make_wallet(user_id=1)
        make_wallet(user_id=2)
        execute_buy(test_db, 2, "stock", "AAPL", "Apple Inc.", 1, 100)

        assert refresh_holding_prices(test_db, 1, static_prices) == []
        assert _holding(test_db, user_id=2).current_price == Decimal("100.00")

    def test_prices_looked_up_outside_transaction(self, test_db, make_wallet, static_prices):
        """The price source is never consulted while holding rows are locked"""
        make_wallet(user_id=1, balance="5000.00")
        execute_buy(test_db, 1, "stock", "AAPL", "Apple Inc.", 2, 100)
        execute_buy(test_db, 1, "stock", "MSFT", "Microsoft", 1, 350)
        source = RecordingPriceSource(test_db, static_prices)

        holdings = refresh_holding_prices(test_db, 1, source)

        assert sorted(source.lookups) == [("stock", "AAPL", False), ("stock", "MSFT", False)]
        assert {h.symbol: h.current_price for h in holdings} == {
            "AAPL": Decimal("120.00"),
            "MSFT": Decimal("400.00"),
        }
