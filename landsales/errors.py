"""Error taxonomy for the sales pipeline.

- ValidationError: caller-supplied data violates a precondition.
- NotFoundError: referenced record is absent or not in an eligible state.
- InvalidTransitionError: a status change is not in the transition table.
- ConsistencyError: a dependent update failed after the primary change was
  applied; the unit of work must be rolled back.
"""


class PipelineError(Exception):
    """Base class for every error raised by the pipeline services."""


class ValidationError(PipelineError, ValueError):
    pass


class NotFoundError(PipelineError, LookupError):
    pass


class InvalidTransitionError(PipelineError, ValueError):
    """Raised when a status change is not allowed from the current status."""

    def __init__(self, entity, current, requested, allowed=None):
        self.entity = entity
        self.current = current
        self.requested = requested
        self.allowed = list(allowed or [])
        super().__init__(
            f"Cannot transition {entity} from '{current}' to '{requested}'. "
            f"Allowed: {', '.join(self.allowed) if self.allowed else 'none (terminal state)'}"
        )


class ConsistencyError(PipelineError):
    """Raised when a cascade fails mid-operation. Never retried."""
