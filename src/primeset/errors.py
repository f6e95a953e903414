"""
Error taxonomy for range scans.

Every failure a scan can hit is a ScanError; the three public kinds map to
distinct process exit codes:

    ScanError (base)
    ├── ConfigError  (bad interval or worker count, raised before any work)
    ├── DomainError  (u64 overflow or sieve/candidate inconsistency)
    └── IoError      (sink write, flush or seal failure)

ScanCancelled is internal: a worker stopped because another one failed.
"""

from typing import Optional


class ScanError(Exception):
    """
    Base scan error.

    Carries the chunk index and candidate where the failure was detected,
    when known. Errors raised inside worker processes are pickled back to
    the parent, so __reduce__ keeps the context across the boundary.
    """
    exit_code = 1

    def __init__(self, message: str, chunk_index: Optional[int] = None,
                 candidate: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.chunk_index = chunk_index
        self.candidate = candidate

    @property
    def kind(self) -> str:
        return type(self).__name__

    def __reduce__(self):
        return (type(self), (self.message, self.chunk_index, self.candidate))

    def __str__(self):
        context = []
        if self.chunk_index is not None:
            context.append(f"chunk {self.chunk_index}")
        if self.candidate is not None:
            context.append(f"candidate {self.candidate}")
        if context:
            return f"{self.message} ({', '.join(context)})"
        return self.message


class ConfigError(ScanError):
    """Invalid interval or worker count."""
    exit_code = 2


class DomainError(ScanError):
    """Arithmetic outside the u64 domain or an inconsistent base sieve."""
    exit_code = 3


class IoError(ScanError):
    """Dataset sink failure. Anything committed before it is invalid."""
    exit_code = 4


class ScanCancelled(ScanError):
    """A worker observed the stop event and abandoned its chunk."""
