"""
Price sources - read-only current prices for (asset_type, symbol) pairs

Every source answers ``get_price(asset_type, symbol)`` with a Decimal, or
``Decimal("0")`` when the asset is not tracked. Trades execute at the
caller-submitted price; these sources are consulted for valuation refresh
and the public price board.
"""
import asyncio
import math
import random
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from threading import Lock
from typing import Dict, List, Optional, Tuple

import httpx

from src.config.settings import settings
from src.observability.logging import get_logger
from src.observability.metrics import get_metrics_collector

logger = get_logger(__name__)

UNKNOWN_PRICE = Decimal("0")

STOCK_BASE_PRICES = {
    "AAPL": 189.45,
    "GOOGL": 178.35,
    "MSFT": 423.56,
    "AMZN": 195.89,
    "NVDA": 875.42,
    "META": 565.78,
    "TSLA": 248.56,
    "BRK.B": 445.23,
    "JPM": 198.45,
    "V": 278.92,
    "JNJ": 156.78,
    "WMT": 165.34,
}

CRYPTO_BASE_PRICES = {
    "BTC": 98234.56,
    "ETH": 3456.78,
    "BNB": 612.34,
    "SOL": 198.45,
    "XRP": 2.34,
    "ADA": 0.89,
    "DOGE": 0.23,
    "AVAX": 78.90,
    "DOT": 12.45,
    "MATIC": 1.67,
    "LINK": 23.45,
    "UNI": 15.67,
}

# Per-tick volatility by asset type
VOLATILITY = {"stock": 0.005, "crypto": 0.02}
MEAN_REVERSION = 0.001
PRICE_BAND = 0.30


def _as_price(value: float) -> Decimal:
    return Decimal(str(round(value, 8)))


class PriceSource(ABC):
    """Read-only price lookup"""

    @abstractmethod
    def get_price(self, asset_type: str, symbol: str) -> Decimal:
        """Current price, or UNKNOWN_PRICE if the asset is not tracked"""


class StaticPriceSource(PriceSource):
    """Fixed price table, for deterministic valuation and seeding"""

    def __init__(self, prices: Optional[Dict[Tuple[str, str], Decimal]] = None):
        self._prices = {key: Decimal(str(value)) for key, value in (prices or {}).items()}

    def set_price(self, asset_type: str, symbol: str, price) -> None:
        self._prices[(asset_type, symbol)] = Decimal(str(price))

    def get_price(self, asset_type: str, symbol: str) -> Decimal:
        return self._prices.get((asset_type, symbol), UNKNOWN_PRICE)


@dataclass
class SimulatedAsset:
    symbol: str
    asset_type: str
    base_price: float
    current_price: float
    last_update: datetime = field(default_factory=datetime.utcnow)


class PriceSimulator(PriceSource):
    """
    Random walk with mean reversion toward each asset's base price,
    clamped to +/-30% of base. Updated by a periodic asyncio task that is
    independent of request handling.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.Random()
        self._lock = Lock()
        self._prices: Dict[str, SimulatedAsset] = {}
        self._task: Optional[asyncio.Task] = None
        self._initialize_prices()

    @staticmethod
    def _key(asset_type: str, symbol: str) -> str:
        return f"{asset_type}_{symbol}"

    def _initialize_prices(self):
        for asset_type, catalog in (("stock", STOCK_BASE_PRICES), ("crypto", CRYPTO_BASE_PRICES)):
            for symbol, base_price in catalog.items():
                self._prices[self._key(asset_type, symbol)] = SimulatedAsset(
                    symbol=symbol,
                    asset_type=asset_type,
                    base_price=base_price,
                    current_price=base_price
                )

    def next_price(self, asset: SimulatedAsset) -> float:
        volatility = VOLATILITY.get(asset.asset_type, VOLATILITY["stock"])
        random_change = (self._rng.random() - 0.5) * 2 * volatility
        mean_reversion = (asset.base_price - asset.current_price) * MEAN_REVERSION

        new_price = asset.current_price + asset.current_price * (random_change + mean_reversion)

        max_price = asset.base_price * (1 + PRICE_BAND)
        min_price = asset.base_price * (1 - PRICE_BAND)
        return max(min_price, min(max_price, new_price))

    def update_prices(self) -> None:
        """Advance every tracked asset by one tick"""
        start_time = time.time()
        now = datetime.utcnow()
        with self._lock:
            for asset in self._prices.values():
                asset.current_price = self.next_price(asset)
                asset.last_update = now
            count = len(self._prices)
        get_metrics_collector().record_price_tick(count, (time.time() - start_time) * 1000)

    def get_price(self, asset_type: str, symbol: str) -> Decimal:
        with self._lock:
            asset = self._prices.get(self._key(asset_type, symbol))
            return _as_price(asset.current_price) if asset else UNKNOWN_PRICE

    def get_all_prices(self, asset_type: Optional[str] = None) -> List[Dict[str, object]]:
        with self._lock:
            return [
                {
                    "symbol": asset.symbol,
                    "price": _as_price(asset.current_price),
                    "asset_type": asset.asset_type,
                }
                for asset in self._prices.values()
                if asset_type is None or asset.asset_type == asset_type
            ]

    def reset(self) -> None:
        """Put every asset back at its base price"""
        now = datetime.utcnow()
        with self._lock:
            for asset in self._prices.values():
                asset.current_price = asset.base_price
                asset.last_update = now

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _run(self, interval_seconds: float):
        while True:
            await asyncio.sleep(interval_seconds)
            try:
                self.update_prices()
            except Exception as e:
                # A failed tick is skipped; the next one starts from the last good prices
                get_metrics_collector().record_error(
                    type(e).__name__,
                    str(e),
                    context={"operation": "price_tick"}
                )

    def start(self, interval_seconds: float = 5.0) -> None:
        """Schedule periodic updates on the running event loop"""
        if self.is_running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(interval_seconds))
        logger.info("Price simulator started", extra={"interval_seconds": interval_seconds})

    def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None
            logger.info("Price simulator stopped")


class MarketDataPriceSource(PriceSource):
    """Stock quotes from the Finnhub REST API with a short-lived cache"""

    BASE_URL = "https://finnhub.io/api/v1"

    def __init__(
        self,
        api_key: Optional[str],
        cache_seconds: float = 60.0,
        client: Optional[httpx.Client] = None
    ):
        self.api_key = api_key or ""
        self.cache_seconds = cache_seconds
        self._client = client or httpx.Client(base_url=self.BASE_URL, timeout=10.0)
        self._cache: Dict[str, Tuple[Decimal, float]] = {}
        self._lock = Lock()
        if not self.api_key:
            logger.warning("FINNHUB_API_KEY not set; market data lookups will return no price")

    def _from_cache(self, symbol: str) -> Optional[Decimal]:
        with self._lock:
            cached = self._cache.get(symbol)
        if cached and time.time() - cached[1] < self.cache_seconds:
            return cached[0]
        return None

    def get_price(self, asset_type: str, symbol: str) -> Decimal:
        if asset_type != "stock" or not self.api_key:
            return UNKNOWN_PRICE

        cached = self._from_cache(symbol)
        if cached is not None:
            return cached

        try:
            response = self._client.get("/quote", params={"symbol": symbol, "token": self.api_key})
            response.raise_for_status()
            payload = response.json()
            if not isinstance(payload, dict):
                raise ValueError(f"Unexpected quote payload: {type(payload).__name__}")
            current = float(payload.get("c") or 0)
            if not math.isfinite(current):
                raise ValueError(f"Non-finite quote: {current}")
        except (httpx.HTTPError, ValueError, TypeError) as e:
            logger.warning(
                "Market data lookup failed",
                extra={"symbol": symbol, "error": str(e)}
            )
            return UNKNOWN_PRICE

        price = _as_price(current)
        if price > 0:
            with self._lock:
                self._cache[symbol] = (price, time.time())
        return price


class FallbackPriceSource(PriceSource):
    """Ask the primary source first, fall back when it does not know the asset"""

    def __init__(self, primary: PriceSource, fallback: PriceSource):
        self.primary = primary
        self.fallback = fallback

    def get_price(self, asset_type: str, symbol: str) -> Decimal:
        price = self.primary.get_price(asset_type, symbol)
        if price > 0:
            return price
        return self.fallback.get_price(asset_type, symbol)


price_simulator = PriceSimulator()

_price_source: Optional[PriceSource] = None


def get_price_source() -> PriceSource:
    """Price source used for valuation; Finnhub-backed when an API key is configured"""
    global _price_source
    if _price_source is None:
        if settings.FINNHUB_API_KEY:
            _price_source = FallbackPriceSource(
                MarketDataPriceSource(settings.FINNHUB_API_KEY, settings.MARKET_DATA_CACHE_SECONDS),
                price_simulator
            )
        else:
            _price_source = price_simulator
    return _price_source
