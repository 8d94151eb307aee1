"""Artifact upload: presigned upload target and PUT transfer."""

from __future__ import annotations

import base64
import json
import logging

import httpx

from remotescan.client import ScanServiceClient
from remotescan.config import (
    ARTIFACT_TYPE_SOURCE_CODE,
    FILE_SCAN_UPLOAD_INTENT,
    PROJECT_SCAN_UPLOAD_INTENT,
)
from remotescan.errors import (
    CreateUploadUrlError,
    InvalidSourceZipError,
    ServiceError,
    UploadArtifactToS3Error,
)
from remotescan.models import CodeAnalysisScope, UploadTarget
from remotescan.utils import ZipMetadata, get_logger_for_scope, get_md5

logger = logging.getLogger(__name__)

FORBIDDEN_PUT_REASON = '"PUT" request failed with code "403"'
GENERIC_UPLOAD_REASON = "Security scan failed."


def get_upload_intent(scope: CodeAnalysisScope) -> str:
    if scope == CodeAnalysisScope.FILE:
        return FILE_SCAN_UPLOAD_INTENT
    return PROJECT_SCAN_UPLOAD_INTENT


async def get_presigned_url_and_upload(
    client: ScanServiceClient,
    zip_metadata: ZipMetadata,
    scope: CodeAnalysisScope,
    scan_name: str,
) -> dict[str, str]:
    """Upload the source archive and return the artifact map for the job.

    Raises:
        InvalidSourceZipError: If no archive path was produced.
        CreateUploadUrlError: If the service refuses an upload target.
        UploadArtifactToS3Error: If the transfer itself fails.
    """
    scoped_logger = get_logger_for_scope(scope)
    if zip_metadata.zip_file_path == "":
        logger.error("Failed to create valid source zip")
        raise InvalidSourceZipError()

    request = {
        "contentMd5": get_md5(zip_metadata.zip_file_path),
        "artifactType": ARTIFACT_TYPE_SOURCE_CODE,
        "uploadIntent": get_upload_intent(scope),
        "uploadContext": {
            "codeAnalysisUploadContext": {"codeScanName": scan_name},
        },
    }
    scoped_logger.info("Prepare for uploading src context...")
    try:
        target = await client.create_upload_url(request)
    except ServiceError as exc:
        logger.error(
            "Failed getting presigned url for uploading src context. Request id: %s",
            exc.request_id,
        )
        raise CreateUploadUrlError(exc) from exc

    scoped_logger.debug("Request id: %s", target.request_id)
    scoped_logger.info("Uploading src context...")
    await upload_artifact_to_s3(client, zip_metadata.zip_file_path, target, scope)
    scoped_logger.info("Complete uploading src context.")
    return {ARTIFACT_TYPE_SOURCE_CODE: target.upload_id}


def build_upload_headers(file_name: str, target: UploadTarget) -> dict[str, str]:
    """Return the headers for the artifact PUT.

    Headers supplied by the upload target replace the computed ones.
    """
    if target.request_headers is not None:
        return dict(target.request_headers)

    encryption_context = json.dumps({"uploadId": target.upload_id}, separators=(",", ":"))
    headers = {
        "Content-MD5": get_md5(file_name),
        "x-amz-server-side-encryption": "aws:kms",
        "Content-Type": "application/zip",
        "x-amz-server-side-encryption-context": base64.b64encode(
            encryption_context.encode("utf-8")
        ).decode("ascii"),
    }
    if target.kms_key_arn:
        headers["x-amz-server-side-encryption-aws-kms-key-id"] = target.kms_key_arn
    return headers


def _failure_reason(exc: Exception) -> str:
    if isinstance(exc, httpx.HTTPStatusError):
        method = exc.request.method
        return f'"{method}" request failed with code "{exc.response.status_code}"'
    return str(exc)


async def upload_artifact_to_s3(
    client: ScanServiceClient,
    file_name: str,
    target: UploadTarget,
    scope: CodeAnalysisScope,
) -> None:
    """PUT the archive bytes to the presigned target. Not retried.

    Raises:
        UploadArtifactToS3Error: With the literal 403 reason when access was
            denied, otherwise the transport's reason.
    """
    scoped_logger = get_logger_for_scope(scope)
    headers = build_upload_headers(file_name, target)
    with open(file_name, "rb") as fh:
        content = fh.read()

    try:
        response = await client.upload_bytes(target.upload_url, content, headers)
    except httpx.HTTPError as exc:
        logger.error(
            "Unable to upload workspace artifacts for security scans. "
            "Check your network or organization proxy settings."
        )
        reason = _failure_reason(exc)
        message = FORBIDDEN_PUT_REASON if FORBIDDEN_PUT_REASON in reason else (
            reason or GENERIC_UPLOAD_REASON
        )
        raise UploadArtifactToS3Error(message) from exc
    scoped_logger.debug(
        "StatusCode: %s, Text: %s", response.status_code, response.reason_phrase
    )
