"""Error kinds surfaced by the stock assistant pipelines."""

from __future__ import annotations


class AssistantError(Exception):
    """Base class for errors returned to the caller with a stable kind."""

    kind = "internal_error"
    status_code = 500

    def to_dict(self) -> dict:
        return {"error": str(self), "kind": self.kind, "status": self.status_code}


class InsufficientDataError(AssistantError):
    """Price data is missing, so the symbol cannot be analyzed."""

    kind = "insufficient_data"
    status_code = 400


class NoSymbolFoundError(AssistantError):
    """The query did not mention any recognizable ticker or company."""

    kind = "no_symbol_found"
    status_code = 400


class UpstreamOracleError(AssistantError):
    """Symbol extraction or narrative summarization failed upstream."""

    kind = "upstream_oracle_failure"
    status_code = 500
