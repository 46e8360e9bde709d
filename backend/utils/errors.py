"""
Exception taxonomy for the scraping pipeline.

- FatalPipelineError: configuration/connectivity failures. Stops the worker
  pool and ends the run with status 'error'.
- TransientScrapeError: a unit could not fetch anything because of network
  failures. Raised out of the unit processor so the queue retries it.
- ModelError: a single model call failed or returned something unusable.
  Isolated to the batch that made the call.
"""


class FatalPipelineError(Exception):
    """No useful partial progress is possible for this run."""


class ModelAuthenticationError(FatalPipelineError):
    """Model endpoint rejected our credentials (or none are configured)."""


class QueueUnavailableError(FatalPipelineError):
    """Queue backend (database) is unreachable."""


class TransientScrapeError(Exception):
    """All fetch attempts for a unit failed with retryable network errors."""


class ModelError(Exception):
    """A model call failed."""


class MalformedModelResponse(ModelError):
    """Model returned a body that is not the expected JSON shape."""


class CooldownActiveError(Exception):
    """On-demand trigger refused because the previous run started too recently."""

    def __init__(self, retry_after: int):
        self.retry_after = retry_after
        super().__init__(f"Please wait {retry_after}s before triggering another run")
