"""Error kinds raised by the scan stages.

Callers branch on the exception class (or its ``code``), never on the
message, except for the HTTP 403 upload case which is carried in the
message of :class:`UploadArtifactToS3Error`.
"""

from __future__ import annotations


class RemoteScanError(Exception):
    """Base class for every remotescan failure."""

    code: str = "RemoteScanError"
    default_message: str = "Security scan failed."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


class ServiceError(RemoteScanError):
    """A call to the scanning service failed or was rejected."""

    code = "ServiceError"

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        request_id: str = "",
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.request_id = request_id


class _WrappedServiceError(RemoteScanError):
    """A stage failure caused by a remote error, kept as ``cause``."""

    def __init__(self, cause: BaseException) -> None:
        super().__init__(f"{self.default_message} {cause}")
        self.cause = cause

    @property
    def request_id(self) -> str:
        return getattr(self.cause, "request_id", "")


class InvalidSourceZipError(RemoteScanError):
    code = "InvalidSourceZipError"
    default_message = "Failed to create valid source zip."


class CreateUploadUrlError(_WrappedServiceError):
    code = "CreateUploadUrlError"
    default_message = "Failed to get presigned url for uploading source context."


class UploadArtifactToS3Error(RemoteScanError):
    code = "UploadArtifactToS3Error"


class CreateCodeScanError(_WrappedServiceError):
    code = "CreateCodeScanError"
    default_message = "Failed to create scan job."


class SecurityScanTimedOutError(RemoteScanError):
    code = "SecurityScanTimedOutError"
    default_message = "Security scan failed. The scan job timed out."


class CodeScanStoppedError(RemoteScanError):
    code = "CodeScanStoppedError"
    default_message = "Security scan stopped by user."


class CodeScanJobFailedError(RemoteScanError):
    """The job reached a terminal status other than ``Completed``."""

    code = "CodeScanJobFailedError"

    def __init__(self, status: str) -> None:
        super().__init__(f"Security scan job finished with status {status!r}.")
        self.status = status
