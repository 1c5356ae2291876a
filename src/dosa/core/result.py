"""
Result envelope for per-row batch outcomes.

Batch connector calls (``multi_read``, ``multi_upsert``, ``multi_remove``)
return one ``Result`` per input position: ``Ok`` carries the row outcome,
``Err`` carries the exception for that row only. A failure of the batch
mechanism itself is raised, never folded into the list.

Manifesto:
    - **Errors as values:** A failed row is data, not control flow
    - **Position-preserving:** ``results[i]`` always describes ``inputs[i]``
    - **Pattern-matchable:** ``match result: case Ok(v): ... case Err(e): ...``

Examples:
    >>> results = [Ok(None), Err(ValueError("bad row")), Ok(None)]
    >>> [r.is_err() for r in results]
    [False, True, False]
    >>> ok, failed = partition_results(results)
    >>> len(ok), len(failed)
    (2, 1)

Tags:
    result-pattern, batch-processing, dosa-core

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar

from dosa.core.errors import DosaError


T = TypeVar("T")
U = TypeVar("U")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Successful result containing a value."""

    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    @property
    def error(self) -> None:
        return None

    def unwrap(self) -> T:
        """Get the value. Safe for Ok."""
        return self.value

    def unwrap_or(self, default: T) -> T:
        """Get value or default (always returns value for Ok)."""
        return self.value

    def map(self, f: Callable[[T], U]) -> Result[U]:
        """Transform the value if Ok."""
        return Ok(f(self.value))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {"ok": True, "value": self.value}

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err(Generic[T]):
    """Failed result containing an error."""

    error: Exception

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self) -> T:
        """Raise the contained error."""
        raise self.error

    def unwrap_or(self, default: T) -> T:
        """Return the default instead of the error."""
        return default

    def map(self, f: Callable[[T], U]) -> Result[U]:
        """No-op for Err."""
        return Err(self.error)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary, using DosaError.to_dict() when available."""
        if isinstance(self.error, DosaError):
            return {"ok": False, "error": self.error.to_dict()}
        return {
            "ok": False,
            "error": {"error_type": type(self.error).__name__, "message": str(self.error)},
        }

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


Result = Ok[T] | Err[T]


def try_result(f: Callable[[], T]) -> Result[T]:
    """
    Execute a function and wrap its outcome in a Result.

    Only ``Exception`` subclasses are captured; ``KeyboardInterrupt`` and
    friends propagate.
    """
    try:
        return Ok(f())
    except Exception as e:
        return Err(e)


def partition_results(results: list[Result[T]]) -> tuple[list[T], list[Exception]]:
    """Split results into (values, errors), each in input order."""
    values: list[T] = []
    errors: list[Exception] = []
    for result in results:
        match result:
            case Ok(value):
                values.append(value)
            case Err(error):
                errors.append(error)
    return values, errors


def error_positions(results: list[Result[T]]) -> list[int]:
    """Indices of the failed entries."""
    return [i for i, result in enumerate(results) if result.is_err()]


__all__ = [
    "Ok",
    "Err",
    "Result",
    "try_result",
    "partition_results",
    "error_positions",
]
