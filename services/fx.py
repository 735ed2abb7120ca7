"""
FX rate service.
Fetches EUR-base exchange rates (EURUSD, EURCHF) through yfinance, caches them
once per calendar day in the database and converts foreign amounts to EUR.
Enhanced with tenacity for retry logic; failures degrade to the last cached
rate instead of raising.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Optional, TypeVar, Union

import yfinance as yf
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from config import get_settings
from repositories import FxRateRepository
from services.common import Amount

logger = logging.getLogger(__name__)

BASE_CURRENCY = "EUR"

Value = TypeVar("Value", float, Amount)


@dataclass(frozen=True)
class FxRates:
    """EUR-base rates keyed by pair, e.g. {"EURUSD": 1.08}."""
    rates: Dict[str, float]
    as_of: date
    stale_pairs: tuple = field(default_factory=tuple)

    def rate_for(self, currency: str) -> Optional[float]:
        """Foreign units per EUR, 1.0 for EUR itself, None when unknown."""
        currency = str(getattr(currency, "value", currency))
        if currency == BASE_CURRENCY:
            return 1.0
        rate = self.rates.get(f"{BASE_CURRENCY}{currency}")
        if rate is None or rate <= 0:
            return None
        return rate

    def to_eur(self, value: Value, currency: str) -> Value:
        """
        Convert an amount to EUR by dividing by the EUR-base rate.
        Without a rate the amount is returned unconverted.
        """
        rate = self.rate_for(currency)
        if rate is None:
            logger.warning(f"No EUR rate for {currency}; leaving amount unconverted")
            return value
        if rate == 1.0:
            return value
        return value / rate

    @property
    def is_stale(self) -> bool:
        return bool(self.stale_pairs)

    def to_dict(self) -> Dict[str, Union[float, str, list]]:
        data: Dict[str, Union[float, str, list]] = dict(self.rates)
        data['asOf'] = self.as_of.isoformat()
        data['stalePairs'] = list(self.stale_pairs)
        return data


def convert_to_eur(value: Value, currency: str, rates: Optional[FxRates]) -> Value:
    """Convert to EUR, skipping conversion entirely when no rates are known."""
    if rates is None:
        if str(getattr(currency, "value", currency)) != BASE_CURRENCY:
            logger.warning(f"FX rates unavailable; {currency} amount left unconverted")
        return value
    return rates.to_eur(value, currency)


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    retry=retry_if_exception_type(Exception),
    reraise=True
)
def fetch_latest_rate(pair: str) -> float:
    """Fetch the latest close of an FX pair (e.g. "EURUSD") from yfinance."""
    ticker = yf.Ticker(f"{pair}=X")
    hist = ticker.history(period="5d")
    if not hist.empty:
        rate = float(hist['Close'].iloc[-1])
        if rate > 0:
            return rate

    info = ticker.info
    rate = info.get('regularMarketPrice') or info.get('previousClose')
    if rate:
        return float(rate)
    raise ValueError(f"No rate data for {pair}")


class FxRateService:
    """
    Daily-cached FX rate provider.
    A pair is fetched at most once per calendar day; on failure the latest
    cached rate of any day is used and the pair is flagged as stale.
    """

    def __init__(self, repository: Optional[FxRateRepository] = None, fetcher=None):
        self.repository = repository or FxRateRepository()
        settings = get_settings()
        self.fetcher = fetcher or fetch_latest_rate.retry_with(
            stop=stop_after_attempt(settings.fx_retry_attempts)
        )
        self.pairs = list(settings.fx_pairs.values())

    def get_rates(self, today: Optional[date] = None) -> Optional[FxRates]:
        """
        Get today's EUR-base rates.

        Returns:
            FxRates with every pair that could be resolved, or None when no
            pair is available at all
        """
        today = today or date.today()
        rates: Dict[str, float] = {}
        stale = []

        for pair in self.pairs:
            cached = self.repository.get_by_date(pair, today)
            if cached:
                logger.debug(f"FX cache hit for {pair} on {today}: {cached.rate}")
                rates[pair] = cached.rate
                continue

            try:
                rate = self.fetcher(pair)
            except Exception as e:
                logger.error(f"Error fetching FX rate {pair}: {e}")
                latest = self.repository.get_latest(pair)
                if latest:
                    logger.warning(f"Using cached {pair} rate from {latest.rate_date}")
                    rates[pair] = latest.rate
                    stale.append(pair)
                continue

            logger.info(f"Fetched {pair} = {rate:.4f}")
            rates[pair] = rate
            self._store(pair, today, rate)

        if not rates:
            logger.warning("No FX rates available; amounts will not be converted")
            return None

        return FxRates(rates=rates, as_of=today, stale_pairs=tuple(stale))

    def refresh(self, today: Optional[date] = None) -> int:
        """
        Force a fetch of every pair for today, overwriting the cache.

        Returns:
            Number of pairs refreshed
        """
        today = today or date.today()
        refreshed = 0
        for pair in self.pairs:
            try:
                rate = self.fetcher(pair)
            except Exception as e:
                logger.error(f"Error refreshing FX rate {pair}: {e}")
                continue
            if self._store(pair, today, rate):
                refreshed += 1
        return refreshed

    def _store(self, pair: str, today: date, rate: float) -> bool:
        """Cache a fetched rate. A write failure keeps the rate usable for this call."""
        try:
            self.repository.save(pair, today, rate)
            return True
        except Exception as e:
            logger.warning(f"Could not cache FX rate {pair}: {e}")
            return False
