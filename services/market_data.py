"""
Market data service for quote and display-name lookups.
Used to prefill the underlying price and the instrument name when entering a
transaction. Enhanced with tenacity for retry logic and resilience; every
public call returns None instead of raising.
"""

import yfinance as yf
import pandas as pd
import logging
from functools import lru_cache
from typing import Optional, Dict

from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from services.common import normalize_symbol

logger = logging.getLogger(__name__)


class MarketDataService:
    """Service for fetching quotes and instrument names from Yahoo Finance."""

    @staticmethod
    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(Exception),
        reraise=True
    )
    def _fetch_ticker_info(yf_symbol: str) -> Dict:
        """Fetch ticker info with retry logic."""
        ticker = yf.Ticker(yf_symbol)
        return ticker.info

    @staticmethod
    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(Exception),
        reraise=True
    )
    def _fetch_ticker_history(yf_symbol: str, period: str = "5d") -> pd.DataFrame:
        """Fetch recent ticker history with retry logic."""
        ticker = yf.Ticker(yf_symbol)
        return ticker.history(period=period)

    @staticmethod
    def get_current_price(symbol: str) -> Optional[float]:
        """
        Fetch the latest price of a symbol.

        Args:
            symbol: Ticker symbol (e.g. "AAPL", "NESN.SW")

        Returns:
            Latest price, or None if unavailable
        """
        yf_symbol = normalize_symbol(symbol)
        if not yf_symbol:
            return None
        try:
            info = MarketDataService._fetch_ticker_info(yf_symbol)
            price = info.get('currentPrice') or info.get('regularMarketPrice') or info.get('lastPrice')

            if price is None:
                hist = MarketDataService._fetch_ticker_history(yf_symbol)
                if not hist.empty:
                    price = hist['Close'].iloc[-1]

            if price:
                return float(price)
            return None

        except Exception as e:
            logger.error(f"Error fetching price for {symbol}: {e}")
            return None

    @staticmethod
    @lru_cache(maxsize=256)
    def lookup_name(symbol: str) -> Optional[str]:
        """
        Look up the display name of a symbol.

        Returns:
            Long or short name of the instrument, or None if unknown
        """
        yf_symbol = normalize_symbol(symbol)
        if not yf_symbol:
            return None
        try:
            info = MarketDataService._fetch_ticker_info(yf_symbol)
            name = info.get('longName') or info.get('shortName')
            return name.strip() if name else None
        except Exception as e:
            logger.error(f"Error looking up name for {symbol}: {e}")
            return None
