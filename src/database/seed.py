"""
Seed database with a plan catalog, funded wallets and sample funds requests
"""
import random
from sqlalchemy.orm import Session
from src.database.connection import database
from src.database.models import InvestmentPlan, Wallet
from src.config.settings import settings
from src.services.funds_review import create_deposit, create_withdrawal
from src.services.investments import create_plan
from src.services.trade_settlement import execute_buy
from src.services.price_source import price_simulator
from src.services.wallets import adjust_wallet_balance, open_wallet


PLAN_CATALOG = [
    # name, min, max, return %, days
    ("Starter", 100, 999, 5, 7),
    ("Growth", 1000, 9999, 12, 30),
    ("Premium", 10000, 49999, 25, 90),
    ("Elite", 50000, 250000, 40, 180),
]

PAYMENT_METHODS = ["bank_transfer", "crypto", "card"]
SAMPLE_STOCKS = ["AAPL", "MSFT", "NVDA", "JPM"]
SAMPLE_CRYPTO = ["BTC", "ETH", "SOL"]


def create_plans(db: Session) -> list:
    """Create the investment plan catalog, skipping plans that already exist by name"""
    existing = {name for (name,) in db.query(InvestmentPlan.name).all()}
    plans = [
        create_plan(
            db,
            name,
            min_amount,
            max_amount,
            return_percentage,
            duration_days,
            description=f"{duration_days}-day plan targeting {return_percentage}% return"
        )
        for name, min_amount, max_amount, return_percentage, duration_days in PLAN_CATALOG
        if name not in existing
    ]
    print(f"Created {len(plans)} investment plans ({len(existing)} already present)")
    return plans


def create_wallets(db: Session, user_ids: list) -> list:
    """Open and fund a wallet per user; funding goes through the ledger log"""
    wallets = []
    for user_id in user_ids:
        wallet = open_wallet(db, user_id)
        adjust_wallet_balance(db, wallet.id, round(random.uniform(2000, 60000), 2))
        wallets.append(wallet)
    print(f"Created {len(wallets)} funded wallets")
    return wallets


def create_sample_activity(db: Session, user_ids: list):
    """A few trades, deposit requests and withdrawal requests per user"""
    trades = deposits = withdrawals = 0
    for user_id in user_ids:
        for asset_type, symbol in (("stock", random.choice(SAMPLE_STOCKS)), ("crypto", random.choice(SAMPLE_CRYPTO))):
            price = price_simulator.get_price(asset_type, symbol)
            quantity = round(500 / float(price), 8)
            execute_buy(db, user_id, asset_type, symbol, symbol, quantity, price)
            trades += 1

        create_deposit(db, user_id, round(random.uniform(100, 5000), 2), random.choice(PAYMENT_METHODS))
        deposits += 1

        if random.random() < 0.5:
            create_withdrawal(db, user_id, round(random.uniform(50, 500), 2), "bank_transfer", bank_details="Sample bank")
            withdrawals += 1

    print(f"Created {trades} trades, {deposits} deposit requests, {withdrawals} withdrawal requests")


def seed_database(force: bool = False, user_count: int = 10):
    """
    Main function to seed the database.

    Args:
        force: If True, seed even if data already exists. If False, skip if data exists.
        user_count: Number of user ids (1..user_count) to open wallets for
    """
    print("Starting database seeding...")

    database.initialize(
        database_url=settings.DATABASE_URL,
        echo=settings.DB_ECHO
    )
    database.create_tables()

    db_gen = database.get_session()
    db = next(db_gen)

    try:
        if not force:
            wallet_count = db.query(Wallet).count()
            plan_count = db.query(InvestmentPlan).count()

            if wallet_count > 0 or plan_count > 0:
                print("\n" + "=" * 80)
                print("Database already contains data:")
                print(f"   - Wallets: {wallet_count}")
                print(f"   - Investment plans: {plan_count}")
                print("\nSkipping seed (data already exists).")
                print("   To force re-seed, use: python -m src.database.seed --force")
                print("=" * 80 + "\n")
                return

        # No users table - wallets are keyed by the ids the token issuer hands out
        existing = {user_id for (user_id,) in db.query(Wallet.user_id).all()}
        user_ids = [user_id for user_id in range(1, user_count + 1) if user_id not in existing]

        print("\nCreating investment plans...")
        plans = create_plans(db)

        print("\nCreating wallets...")
        create_wallets(db, user_ids)

        print("\nCreating sample activity...")
        create_sample_activity(db, user_ids)

        print("\n" + "=" * 80)
        print("Database seeding completed successfully!")
        print(f"   - Users: {len(user_ids)}")
        print(f"   - Plans: {len(plans)} new")
        print("=" * 80 + "\n")

    except Exception as e:
        print(f"\nError seeding database: {e}")
        raise
    finally:
        next(db_gen, None)  # Consume the generator to close the session


if __name__ == "__main__":
    import sys
    force = "--force" in sys.argv or "-f" in sys.argv
    seed_database(force=force)
