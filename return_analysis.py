"""
Return Analysis

Historical CAGR for portfolio holdings, paired with the same figure for the
NIFTY 50 index over the same holding period.

    CAGR = (last_close / first_close) ** (1 / years) - 1
    years = (now - acquisition_date) / 365.25 days

Every failure mode (no data, bad date, provider error) collapses to "N/A" for
that one value so a single bad holding never sinks the batch.

Usage:
    from return_analysis import ReturnAnalyzer

    analyzer = ReturnAnalyzer()
    records = analyzer.analyze(holdings, tickers)
"""

import os
import math
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional, Union

logger = logging.getLogger(__name__)

NOT_AVAILABLE = "N/A"
BENCHMARK_TICKER = os.getenv("BENCHMARK_TICKER", "^NSEI")
RETURNS_MAX_WORKERS = int(os.getenv("RETURNS_MAX_WORKERS", "8"))
DAYS_PER_YEAR = 365.25

DateLike = Union[date, datetime, str, None]


@dataclass
class PricePoint:
    date: date
    close: Optional[float]


@dataclass
class Holding:
    name: str
    invested_date: DateLike = None


@dataclass
class ReturnRecord:
    asset_name: str
    ticker: str
    invested_date: DateLike
    asset_cagr: str = NOT_AVAILABLE
    benchmark_cagr: str = NOT_AVAILABLE

    def to_dict(self) -> Dict[str, Any]:
        invested = self.invested_date
        if isinstance(invested, (date, datetime)):
            invested = invested.isoformat()
        return {
            "name": self.asset_name,
            "ticker": self.ticker,
            "investedDate": invested,
            "annualReturn": self.asset_cagr,
            "niftyCAGR": self.benchmark_cagr,
        }


# ------------------------ Price Sources ------------------------ #

class PriceSource:
    def fetch_daily_closes(self, ticker: str, from_date: date, to_date: date) -> List[PricePoint]:
        raise NotImplementedError


class YahooPriceSource(PriceSource):
    """Daily closes from Yahoo Finance via yfinance."""

    def __init__(self, timeout: int = 30):
        self.timeout = timeout

    def fetch_daily_closes(self, ticker: str, from_date: date, to_date: date) -> List[PricePoint]:
        import yfinance as yf

        # yfinance treats ``end`` as exclusive
        hist = yf.Ticker(ticker).history(
            start=from_date.isoformat(),
            end=(to_date + timedelta(days=1)).isoformat(),
            interval="1d",
            auto_adjust=False,
            timeout=self.timeout,
        )
        if hist is None or hist.empty or "Close" not in hist.columns:
            return []

        points = []
        for ts, close in hist["Close"].items():
            value = None if close is None or (isinstance(close, float) and math.isnan(close)) else float(close)
            points.append(PricePoint(date=ts.date() if hasattr(ts, "date") else ts, close=value))
        return points


# ------------------------ CAGR ------------------------ #

def parse_date(value: DateLike) -> Optional[datetime]:
    """Accept date, datetime, or ISO-8601 string; None when unparseable."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if isinstance(value, date):
        return datetime.combine(value, datetime.min.time())
    if isinstance(value, str):
        s = value.strip()
        if s.endswith("Z"):
            s = s[:-1]
        try:
            return datetime.fromisoformat(s).replace(tzinfo=None)
        except ValueError:
            return None
    return None


def format_percent(rate: float) -> str:
    return f"{rate * 100:.2f}%"


def cagr_from_series(points: List[PricePoint], start: datetime, now: datetime) -> str:
    if not points or len(points) < 2:
        return NOT_AVAILABLE
    ordered = sorted(points, key=lambda p: p.date)
    start_price = ordered[0].close
    end_price = ordered[-1].close
    if not start_price or not end_price or start_price <= 0 or end_price <= 0:
        return NOT_AVAILABLE

    years = (now - start).total_seconds() / (DAYS_PER_YEAR * 86400)
    if years <= 0:
        return NOT_AVAILABLE
    cagr = math.pow(end_price / start_price, 1.0 / years) - 1.0
    return format_percent(cagr)


class ReturnAnalyzer:
    def __init__(self, price_source: Optional[PriceSource] = None, benchmark_ticker: str = BENCHMARK_TICKER, max_workers: int = RETURNS_MAX_WORKERS):
        self.price_source = price_source or YahooPriceSource()
        self.benchmark_ticker = benchmark_ticker
        self.max_workers = max(1, int(max_workers))

    def compute_return(self, ticker: Optional[str], acquisition_date: DateLike, now: Optional[datetime] = None) -> str:
        """Annualized return for ``ticker`` since ``acquisition_date`` as "12.34%" or "N/A"."""
        start = parse_date(acquisition_date)
        if not ticker or ticker == NOT_AVAILABLE or start is None:
            return NOT_AVAILABLE
        now = now or datetime.now()
        # Daily closes: no elapsed trading day means nothing to annualize
        if start.date() >= now.date():
            return NOT_AVAILABLE

        try:
            points = self.price_source.fetch_daily_closes(ticker, start.date(), now.date())
        except Exception as e:
            logger.warning(f"Price fetch failed for {ticker}: {e}")
            return NOT_AVAILABLE

        if not points or len(points) < 2:
            logger.warning(f"No data for {ticker} between {start.date()} and {now.date()}")
            return NOT_AVAILABLE
        try:
            return cagr_from_series(points, start, now)
        except (OverflowError, ValueError, TypeError, ZeroDivisionError) as e:
            logger.warning(f"CAGR calculation failed for {ticker}: {e}")
            return NOT_AVAILABLE

    def _record_for(self, holding: Holding, ticker: str, now: Optional[datetime]) -> ReturnRecord:
        record = ReturnRecord(asset_name=holding.name, ticker=ticker, invested_date=holding.invested_date)
        if holding.invested_date:
            record.asset_cagr = self.compute_return(ticker, holding.invested_date, now)
            record.benchmark_cagr = self.compute_return(self.benchmark_ticker, holding.invested_date, now)
        return record

    def analyze(self, holdings: List[Holding], tickers: Dict[str, str], now: Optional[datetime] = None) -> List[ReturnRecord]:
        """
        Compute a ReturnRecord per holding, concurrently.

        Output order follows ``holdings`` regardless of which fetch finishes first.
        """
        if not holdings:
            return []
        now = now or datetime.now()
        workers = min(self.max_workers, len(holdings))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            return list(executor.map(
                lambda h: self._record_for(h, tickers.get(h.name, NOT_AVAILABLE), now),
                holdings,
            ))
