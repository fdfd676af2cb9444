"""
Ticker Resolution

Maps free-text asset names (as they appear in broker screenshots) to Yahoo
Finance ticker symbols for NSE-listed instruments.

Resolution runs a chain of lookups per batch of names. Each lookup returns a
partial mapping; for every name the first usable ticker wins, where usable
means non-empty and not "N/A":

    1. AIBatchTickerLookup   - one LLM call for the whole batch (best effort)
    2. FallbackTickerLookup  - static overrides, then the ".NS" suffix rule

The fallback always answers, so every name gets a ticker even when the LLM
call fails outright.

Usage:
    from tickers import TickerResolver

    resolver = TickerResolver.with_llm(llm_client)
    tickers = resolver.resolve({"GOLDBEES-EQ", "PAYTM"})
"""

import re
import json
import logging
from typing import Any, Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)

NOT_AVAILABLE = "N/A"
MARKET_SUFFIX = ".NS"

# Names whose Yahoo symbol cannot be derived by suffixing
SYMBOL_OVERRIDES = {
    "MIDCAPIETF-EQ": "MIDCAP.NS",
    "GOLDBEES-EQ": "GOLDBEES.NS",
    "NIFTYIETF-EQ": "NIFTYBEES.NS",
    "ICICI Prudential Nifty LargeMidcap 250 Index Fund - Growth": "ICICILARGEMID.NS",
}

TICKER_PROMPT = """
Map the following common Indian stock or mutual fund names to their correct Yahoo Finance ticker symbols (with .NS suffix if needed). If the name is unrecognized or ambiguous, respond with "N/A".

Return only JSON in the format:
[
  {{ "name": "ICICI Prudential Nifty Midcap 250 Index Fund - Growth", "ticker": "ICICIMCAP.NS" }},
  {{ "name": "My Gold", "ticker": "GOLDBEES.NS" }},
  ...
]

Names:
{names}
"""

_FENCED_JSON_RE = re.compile(r"```json([\s\S]*?)```", re.IGNORECASE)
_JSON_ARRAY_RE = re.compile(r"\[.*\]", re.DOTALL)


def is_usable_ticker(ticker: Any) -> bool:
    return isinstance(ticker, str) and bool(ticker.strip()) and ticker.strip() != NOT_AVAILABLE


def fallback_ticker(name: str) -> str:
    """Deterministic symbol for ``name``: override table, else add the NSE suffix."""
    if name in SYMBOL_OVERRIDES:
        return SYMBOL_OVERRIDES[name]
    if not name.endswith(MARKET_SUFFIX):
        return name + MARKET_SUFFIX
    return name


def extract_json_from_markdown(raw_text: Optional[str]) -> Optional[str]:
    """Pull a JSON array out of a model reply that may wrap it in prose or fences."""
    if not raw_text:
        return None
    m = _FENCED_JSON_RE.search(raw_text)
    if m and m.group(1).strip():
        return m.group(1).strip()
    m = _JSON_ARRAY_RE.search(raw_text)
    if m:
        return m.group(0)
    return None


def parse_ticker_mapping(raw_text: Optional[str]) -> Dict[str, str]:
    """
    Parse an LLM reply into {name: ticker}.

    Raises ValueError when no JSON array can be recovered from the reply.
    """
    cleaned = extract_json_from_markdown(raw_text)
    if not cleaned:
        raise ValueError("No JSON detected in ticker mapping response")
    parsed = json.loads(cleaned)
    if not isinstance(parsed, list):
        raise ValueError(f"Expected a JSON array, got {type(parsed).__name__}")

    mapping: Dict[str, str] = {}
    for entry in parsed:
        if not isinstance(entry, dict):
            continue
        name = entry.get("name")
        ticker = entry.get("ticker")
        if name and ticker:
            mapping[str(name)] = str(ticker).strip()
    return mapping


# ------------------------ Lookup Strategies ------------------------ #

class TickerLookup:
    name: str = "base"

    def lookup(self, names: List[str]) -> Dict[str, str]:
        raise NotImplementedError


class FallbackTickerLookup(TickerLookup):
    name = "fallback"

    def lookup(self, names: List[str]) -> Dict[str, str]:
        return {n: fallback_ticker(n) for n in names}


class AIBatchTickerLookup(TickerLookup):
    """Resolve a whole batch with one text-generation call."""

    name = "ai_batch"

    def __init__(self, llm):
        self.llm = llm

    def build_prompt(self, names: List[str]) -> str:
        return TICKER_PROMPT.format(names="\n".join(names))

    def lookup(self, names: List[str]) -> Dict[str, str]:
        if not names:
            return {}
        try:
            raw = self.llm.generate_text(self.build_prompt(names))
            mapping = parse_ticker_mapping(raw)
        except Exception as e:
            logger.warning(f"AI ticker lookup failed for {len(names)} names, using fallback: {e}")
            return {}
        logger.info(f"AI ticker lookup mapped {len(mapping)}/{len(names)} names")
        return mapping


# ------------------------ Resolver ------------------------ #

class TickerResolver:
    def __init__(self, lookups: Optional[List[TickerLookup]] = None):
        lookups = list(lookups or [])
        # The deterministic lookup must close the chain
        if not lookups or not isinstance(lookups[-1], FallbackTickerLookup):
            lookups.append(FallbackTickerLookup())
        self.lookups = lookups

    @classmethod
    def with_llm(cls, llm=None) -> "TickerResolver":
        if llm is None:
            return cls()
        return cls([AIBatchTickerLookup(llm)])

    def resolve(self, names: Iterable[str]) -> Dict[str, str]:
        distinct = sorted({n for n in names if n})
        if not distinct:
            return {}

        results = [lookup.lookup(distinct) for lookup in self.lookups]
        resolved: Dict[str, str] = {}
        for name in distinct:
            for partial in results:
                ticker = partial.get(name)
                if is_usable_ticker(ticker):
                    resolved[name] = ticker.strip()
                    break
        return resolved
