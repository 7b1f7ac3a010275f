"""
Failure classification for the update pipeline and the HTTP surface.

Every fatal condition in a publish run is raised as a subclass of
`UpdateError` carrying a `FailureKind`, the manifest file involved and the
phase it failed in. The message alone must be enough to tell which file
and which step broke.

Card search misses are NOT failures: the resolver returns None / [] and the
caller reports "not found".
"""

from enum import Enum


class FailureKind(str, Enum):
    """Classification of failure types."""

    # Update pipeline
    NETWORK_FAILURE = "network_failure"
    EMPTY_ARTIFACT = "empty_artifact"
    INTEGRITY_FAILURE = "integrity_failure"
    EXTRACTION_STALL = "extraction_stall"
    EXTRACTION_PROCESS_FAILURE = "extraction_process_failure"
    MISSING_ARTIFACT = "missing_artifact"
    STORAGE_FAILURE = "storage_failure"

    # Request handling
    UPDATE_IN_PROGRESS = "update_in_progress"
    UPDATE_COOLDOWN = "update_cooldown"


class KnownError(Exception):
    """
    Base class for exceptions that represent known, explainable failures.

    Subclass this for errors where the system knows exactly what went wrong.
    """

    def __init__(
        self,
        kind: FailureKind,
        message: str,
        detail: str | None = None,
        status_code: int = 400,
    ):
        self.kind = kind
        self.message = message
        self.detail = detail
        self.status_code = status_code
        super().__init__(message)


class UpdateError(KnownError):
    """A publish run could not complete."""

    def __init__(
        self,
        kind: FailureKind,
        message: str,
        *,
        file_name: str | None = None,
        phase: str | None = None,
        detail: str | None = None,
    ):
        self.file_name = file_name
        self.phase = phase
        super().__init__(kind=kind, message=message, detail=detail, status_code=502)


class NetworkFailure(UpdateError):
    """All download attempts for a file failed."""

    def __init__(self, file_name: str, attempts: int, detail: str | None = None):
        self.attempts = attempts
        super().__init__(
            FailureKind.NETWORK_FAILURE,
            f"Failed to download {file_name} after {attempts} attempts",
            file_name=file_name,
            phase="fetch",
            detail=detail,
        )


class EmptyArtifact(UpdateError):
    """A download finished but produced zero bytes."""

    def __init__(self, file_name: str, attempts: int):
        self.attempts = attempts
        super().__init__(
            FailureKind.EMPTY_ARTIFACT,
            f"Downloaded {file_name} is empty after {attempts} attempts",
            file_name=file_name,
            phase="fetch",
        )


class IntegrityFailure(UpdateError):
    """The staged file does not match its published checksum."""

    def __init__(self, file_name: str, expected: str | None, actual: str | None):
        self.expected = expected
        self.actual = actual
        if expected is None:
            message = f"Checksum file for {file_name} does not contain a SHA-256 digest"
        else:
            message = f"Checksum mismatch for {file_name}: expected {expected}, got {actual}"
        super().__init__(
            FailureKind.INTEGRITY_FAILURE,
            message,
            file_name=file_name,
            phase="verify",
        )


class ExtractionStall(UpdateError):
    """The decompressor produced no output for too long and was killed."""

    def __init__(self, file_name: str, idle_seconds: float, pid: int | None = None):
        self.idle_seconds = idle_seconds
        self.pid = pid
        super().__init__(
            FailureKind.EXTRACTION_STALL,
            f"Extraction of {file_name} stalled: no output for {idle_seconds:.0f}s",
            file_name=file_name,
            phase="extract",
        )


class ExtractionProcessFailure(UpdateError):
    """The decompressor exited non-zero or could not be started."""

    def __init__(self, file_name: str, returncode: int | None, detail: str | None = None):
        self.returncode = returncode
        if returncode is None:
            message = f"Could not start decompressor for {file_name}"
        else:
            message = f"Extraction of {file_name} failed with exit code {returncode}"
        super().__init__(
            FailureKind.EXTRACTION_PROCESS_FAILURE,
            message,
            file_name=file_name,
            phase="extract",
            detail=detail,
        )


class MissingArtifact(UpdateError):
    """A file the manifest requires is not where the pipeline expects it."""

    def __init__(self, file_name: str, phase: str):
        super().__init__(
            FailureKind.MISSING_ARTIFACT,
            f"Expected {file_name} is missing during {phase}",
            file_name=file_name,
            phase=phase,
        )


class StorageFailure(UpdateError):
    """A local file or directory operation failed (disk full, permissions, rename)."""

    def __init__(self, file_name: str, phase: str, detail: str | None = None):
        super().__init__(
            FailureKind.STORAGE_FAILURE,
            f"Filesystem operation on {file_name} failed during {phase}",
            file_name=file_name,
            phase=phase,
            detail=detail,
        )


class UpdateRejected(KnownError):
    """An update request was refused before any work started."""

    def __init__(self, kind: FailureKind, message: str, retry_after: float | None = None):
        self.retry_after = retry_after
        status_code = 409 if kind == FailureKind.UPDATE_IN_PROGRESS else 429
        super().__init__(kind=kind, message=message, status_code=status_code)
