"""
Report pipeline: one instance per request.

    raw text -> SectionValidator -> validated text
        validated text -> asset table -> AssetRow list
        validated text -> PDF
    holdings -> TickerResolver (one batch) -> ReturnAnalyzer (fan-out)
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from asset_table import AssetRow, extract_assets
from llm_client import LLMClient, llm_configured
from report_pdf import render_report_pdf
from report_sections import Report, SectionValidator
from return_analysis import Holding, ReturnAnalyzer, ReturnRecord
from tickers import TickerResolver

logger = logging.getLogger(__name__)


@dataclass
class ReportResult:
    raw_text: str
    validated_text: str
    report: Report
    assets: List[AssetRow] = field(default_factory=list)

    @property
    def structured(self) -> bool:
        return not self.report.is_empty

    @property
    def display_text(self) -> str:
        # Nothing recognized: fall back to what the model actually said
        return self.validated_text if self.structured else (self.raw_text or "").strip()

    def to_dict(self) -> Dict[str, Any]:
        report = self.report.to_dict()
        return {
            "report": self.display_text,
            "structured": self.structured,
            "sections": report["sections"],
            "missing_sections": report["missing"],
            "assets": [a.to_dict() for a in self.assets],
        }


def _default_llm() -> Optional[LLMClient]:
    if not llm_configured():
        logger.info("OPENAI_API_KEY not set; ticker resolution uses fallback table only")
        return None
    return LLMClient()


class ReportPipeline:
    def __init__(self, validator: Optional[SectionValidator] = None, resolver: Optional[TickerResolver] = None, analyzer: Optional[ReturnAnalyzer] = None):
        self.validator = validator or SectionValidator()
        self._resolver = resolver
        self.analyzer = analyzer or ReturnAnalyzer()

    @property
    def resolver(self) -> TickerResolver:
        if self._resolver is None:
            self._resolver = TickerResolver.with_llm(_default_llm())
        return self._resolver

    def process(self, raw_text: str) -> ReportResult:
        validated = self.validator.validate(raw_text)
        report = self.validator.scan(validated)
        assets = extract_assets(validated) if not report.is_empty else []
        logger.info(f"Report validated: sections={report.indices} assets={len(assets)}")
        if not report.is_empty and not report.is_complete:
            logger.warning(f"Report is missing sections {report.missing}")
        return ReportResult(raw_text=raw_text or "", validated_text=validated, report=report, assets=assets)

    def render(self, result: ReportResult, sink) -> None:
        render_report_pdf(result.display_text, sink)

    def analyze_returns(self, holdings: List[Holding], now=None) -> List[ReturnRecord]:
        tickers = self.resolver.resolve(h.name for h in holdings)
        records = self.analyzer.analyze(holdings, tickers, now=now)
        logger.info(f"Computed returns for {len(records)} holdings")
        return records
