from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Literal, Optional

ErrorType = Literal[
    "INVALID_REQUEST",
    "ENGINE_ERROR",
    "FILE_ERROR",
    "SERVICE_ERROR",
    "DECODE_ERROR",
    "NONZERO_EXIT",
]

EXIT_CODES: Dict[str, int] = {
    "ENGINE_ERROR": 1,
    "INVALID_REQUEST": 2,
    "FILE_ERROR": 3,
    "SERVICE_ERROR": 4,
    "DECODE_ERROR": 5,
    "NONZERO_EXIT": 1,
}

@dataclass(frozen=True)
class RockerError:
    type: ErrorType
    message: str
    exit_code: Optional[int] = None

    @property
    def status(self) -> int:
        """Process exit status for this error (never 0)."""
        if self.exit_code:
            return self.exit_code
        return EXIT_CODES[self.type]


class EngineStreamError(RuntimeError):
    """An error event reported by the engine in the middle of a stream."""


class InvalidRequest(ValueError):
    """A flag value that cannot be translated into an engine request."""


class DecodeError(ValueError):
    """The execution service answered with a body we cannot decode."""
