"""Business logic services."""
from competitor_signals.services.analysis_cache import AnalysisCache, CachePolicy, make_key
from competitor_signals.services.enhanced_aggregator import AggregateOptions, EnhancedSignalAggregator
from competitor_signals.services.enhanced_cache import EnhancedCache, EnhancedRead
from competitor_signals.services.identity import canonicalize, parse_line, parse_competitor_list
from competitor_signals.services.intelligence import IntelligenceService, AnalysisOutcome
from competitor_signals.services.report_store import ReportStore, ReportDraft
from competitor_signals.services.signal_aggregator import SignalAggregator
from competitor_signals.services.streaming import StreamSessionRegistry, LiveUpdateHub

__all__ = [
    "AnalysisCache",
    "CachePolicy",
    "make_key",
    "AggregateOptions",
    "EnhancedSignalAggregator",
    "EnhancedCache",
    "EnhancedRead",
    "canonicalize",
    "parse_line",
    "parse_competitor_list",
    "IntelligenceService",
    "AnalysisOutcome",
    "ReportStore",
    "ReportDraft",
    "SignalAggregator",
    "StreamSessionRegistry",
    "LiveUpdateHub",
]
