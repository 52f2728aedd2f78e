"""
Extraction outcomes and errors.

Extractors never raise on a node of the wrong shape. They return a ``Result``
carrying either the record or an ``ExtractionFailure`` describing the
mismatch. Call sites that have already established the node is valid use
``Result.unwrap()`` (or a module's ``*_or_raise`` variant), which escalates
the failure into an ``ExtractionError``.
"""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class ExtractionFailure:
    """Why a node could not be extracted."""

    kind: str  # "not_a_literal", "not_a_case", "inconsistent_arity", ...
    message: str

    def __str__(self) -> str:
        return self.message


class ExtractionError(ValueError):
    """Raised when an extraction failure is escalated at a call site."""

    def __init__(self, failure: ExtractionFailure):
        self.failure = failure
        self.kind = failure.kind
        super().__init__(f"{failure.kind}: {failure.message}")


@dataclass(frozen=True)
class Result:
    value: Any = None
    error: ExtractionFailure | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> Any:
        if self.error is not None:
            raise ExtractionError(self.error)
        return self.value


def success(value: Any) -> Result:
    return Result(value=value)


def failure(kind: str, message: str) -> Result:
    return Result(error=ExtractionFailure(kind, message))
