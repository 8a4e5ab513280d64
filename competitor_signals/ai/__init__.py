"""AI-powered analysis: report summaries and review sentiment."""
from competitor_signals.ai.llm import LLMClient
from competitor_signals.ai.sentiment import QuoteSentimentSummarizer
from competitor_signals.ai.summarizer import ReportSummarizer

__all__ = ["LLMClient", "QuoteSentimentSummarizer", "ReportSummarizer"]
