# ===================================== IMPORTS ====================================== #

# Standard Library Imports
from typing import Optional

# ==================================== EXCEPTIONS ==================================== #

class ComparisonError(Exception):
    """Base exception for errors raised while comparing clustering methods.

    Carries the offending method and, where known, the offending feature so
    that failures can be traced back to one pipeline's table.
    """

    def __init__(
        self,
        message: str,
        method: Optional[str] = None,
        feature_id: Optional[str] = None
    ):
        self.method = method
        self.feature_id = feature_id
        context = []
        if method is not None:
            context.append(f"method={method!r}")
        if feature_id is not None:
            context.append(f"feature_id={feature_id!r}")
        if context:
            message = f"{message} [{', '.join(context)}]"
        super().__init__(message)


class SchemaError(ComparisonError, ValueError):
    """Malformed or ambiguous abundance table."""
    pass


class DivisionError(ComparisonError, ZeroDivisionError):
    """A method has no observed samples to average over."""
    pass


class ConsistencyError(ComparisonError):
    """A filtered stage contains a key its upstream stage does not."""
    pass
