"""Async client for the remote scanning service.

Every operation is a JSON ``POST /<operation>`` against the configured
endpoint. Artifact bytes go to the presigned upload URL through a second,
unauthenticated client so the bearer token never leaves the service.
"""

from __future__ import annotations

from typing import Any

import httpx

from remotescan.config import REQUEST_ID_HEADER, Settings
from remotescan.errors import ServiceError
from remotescan.models import (
    FindingsPage,
    ScanJob,
    UploadTarget,
    parse_findings_page,
)


class ScanServiceClient:
    def __init__(
        self,
        endpoint: str,
        token: str = "",
        *,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.AsyncClient(
            base_url=endpoint,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )
        self._upload_client = httpx.AsyncClient(
            timeout=timeout, follow_redirects=True, transport=transport
        )

    @classmethod
    def from_settings(
        cls, settings: Settings, transport: httpx.AsyncBaseTransport | None = None
    ) -> ScanServiceClient:
        return cls(
            settings.endpoint,
            settings.token,
            timeout=settings.request_timeout,
            transport=transport,
        )

    async def __aenter__(self) -> ScanServiceClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()
        await self._upload_client.aclose()

    async def _call(self, operation: str, payload: dict[str, Any]) -> tuple[dict[str, Any], str]:
        try:
            resp = await self._client.post(f"/{operation}", json=payload)
        except httpx.HTTPError as exc:
            raise ServiceError(f"{operation} request failed: {exc}") from exc

        request_id = resp.headers.get(REQUEST_ID_HEADER, "")
        if resp.status_code >= 400:
            try:
                body = resp.json()
            except ValueError:
                body = None
            detail = body.get("message", resp.text) if isinstance(body, dict) else resp.text
            raise ServiceError(
                f"{operation} failed with HTTP {resp.status_code}: {detail}",
                status_code=resp.status_code,
                request_id=request_id,
            )
        try:
            return resp.json(), request_id
        except ValueError as exc:
            raise ServiceError(
                f"{operation} returned a non-JSON body",
                status_code=resp.status_code,
                request_id=request_id,
            ) from exc

    # --- operations ---

    async def create_upload_url(self, request: dict[str, Any]) -> UploadTarget:
        data, request_id = await self._call("createUploadUrl", request)
        return UploadTarget.from_dict(data, request_id)

    async def upload_bytes(
        self, url: str, content: bytes, headers: dict[str, str]
    ) -> httpx.Response:
        """PUT *content* to a presigned *url*.

        Raises:
            httpx.HTTPStatusError: If the store answers with an error status.
            httpx.HTTPError: On transport failures.
        """
        resp = await self._upload_client.put(url, content=content, headers=headers)
        resp.raise_for_status()
        return resp

    async def create_code_scan(self, request: dict[str, Any]) -> ScanJob:
        data, request_id = await self._call("createCodeScan", request)
        return ScanJob.from_dict(data, request_id)

    async def get_code_scan(self, job_id: str) -> ScanJob:
        data, request_id = await self._call("getCodeScan", {"jobId": job_id})
        data.setdefault("jobId", job_id)
        return ScanJob.from_dict(data, request_id)

    async def list_code_scan_findings(
        self,
        job_id: str,
        code_scan_findings_schema: str,
        next_token: str | None = None,
    ) -> FindingsPage:
        payload: dict[str, Any] = {
            "jobId": job_id,
            "codeScanFindingsSchema": code_scan_findings_schema,
        }
        if next_token:
            payload["nextToken"] = next_token
        data, request_id = await self._call("listCodeScanFindings", payload)
        try:
            return parse_findings_page(data, request_id)
        except ValueError as exc:
            raise ServiceError(str(exc), request_id=request_id) from exc
