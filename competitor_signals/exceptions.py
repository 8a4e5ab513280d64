"""Exceptions raised by the analysis pipeline and its collaborators."""


class CompetitorSignalsError(Exception):
    """Base class for all application errors."""


class InvalidRequestError(CompetitorSignalsError):
    """The request cannot be processed (e.g. no usable competitor names)."""


class AnalysisError(CompetitorSignalsError):
    """A request-level failure. No partial report is returned or persisted."""


class SummarizationError(CompetitorSignalsError):
    """The summarizer could not produce a report."""


class LLMError(SummarizationError):
    """An LLM provider call failed or no provider is configured."""


class ReportNotFoundError(CompetitorSignalsError):
    def __init__(self, report_id: str):
        super().__init__(f"Report not found: {report_id}")
        self.report_id = report_id


class TrackingLimitError(CompetitorSignalsError):
    """Adding a tracked competitor would exceed the per-user limit."""


class DuplicateCompetitorError(CompetitorSignalsError):
    """The competitor is already tracked under the same canonical key."""
