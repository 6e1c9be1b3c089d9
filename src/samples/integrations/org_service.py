"""Organization service connector (Dataverse Web API).

Purpose
- Define the small service capability the sample helpers depend on.
- Provide a testable `requests`-based implementation of it.
- Get bearer tokens from an Azure identity credential (or a fixed token).

This module is intentionally independent of the console samples.
"""

from __future__ import annotations

import base64
import logging
import os
import uuid
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Protocol

import requests
from azure.core.credentials import TokenCredential
from azure.identity import DefaultAzureCredential
from dotenv import dotenv_values, load_dotenv

from src.samples.errors import (
    OrganizationServiceFault,
    OrganizationServiceFaultError,
    OrganizationServiceTimeoutError,
)
from src.samples.integrations.messages import (
    Entity,
    EntityCollection,
    ImportSolutionRequest,
    ImportSolutionResponse,
    QueryByAttribute,
    QueryExpression,
    RetrieveVersionRequest,
    RetrieveVersionResponse,
)

logger = logging.getLogger(__name__)

load_dotenv(override=False)

# Convenience: allow local runs with only `.env.example` filled.
# `.env.example` carries blank placeholders for secrets; blanks must not
# override real `.env` values.
if not os.environ.get("DATAVERSE_URL"):
    example_path = os.path.abspath(".env.example")
    if os.path.exists(example_path):
        for k, v in (dotenv_values(example_path) or {}).items():
            if not k or v is None:
                continue
            if v == "":
                continue
            if not os.environ.get(k):
                os.environ[k] = v


TRACE_TEXT_KEY = "@Microsoft.PowerApps.CDS.TraceText"


class OrganizationService(Protocol):
    def execute(self, request: Any) -> Any: ...

    def retrieve_multiple(self, query: QueryExpression | QueryByAttribute) -> EntityCollection: ...

    def delete(self, entity_name: str, id: uuid.UUID) -> None: ...


def entity_set_name(logical_name: str) -> str:
    """Default Web API entity set name for a table logical name (solution -> solutions)."""

    if logical_name.endswith("y") and not logical_name.endswith(("ay", "ey", "oy", "uy")):
        return logical_name[:-1] + "ies"
    if logical_name.endswith(("s", "x", "ch", "sh")):
        return logical_name + "es"
    return logical_name + "s"


def _parse_fault(
    error: dict[str, Any] | None,
    *,
    timestamp: datetime,
    fallback_message: str,
) -> OrganizationServiceFault:
    error = error or {}
    inner = error.get("innererror")
    inner_fault = None
    if isinstance(inner, dict) and inner.get("message"):
        inner_fault = OrganizationServiceFault(
            timestamp=timestamp,
            error_code=inner.get("code") or 0,
            message=str(inner.get("message") or ""),
            trace_text=inner.get("stacktrace"),
        )

    return OrganizationServiceFault(
        timestamp=timestamp,
        error_code=error.get("code") or 0,
        message=str(error.get("message") or fallback_message),
        trace_text=error.get(TRACE_TEXT_KEY),
        inner_fault=inner_fault,
    )


def _response_timestamp(resp: requests.Response) -> datetime:
    date_header = resp.headers.get("Date")
    if date_header:
        try:
            return parsedate_to_datetime(date_header)
        except (TypeError, ValueError):
            logger.debug("Unparseable Date header: %s", date_header)
    return datetime.now(timezone.utc)


def fault_from_response(resp: requests.Response) -> OrganizationServiceFaultError:
    """Build the fault error for a failed Web API response."""

    try:
        body = resp.json()
    except ValueError:
        body = None

    error = body.get("error") if isinstance(body, dict) else None
    detail = _parse_fault(
        error if isinstance(error, dict) else None,
        timestamp=_response_timestamp(resp),
        fallback_message=f"HTTP {resp.status_code}: {resp.text}",
    )
    return OrganizationServiceFaultError(detail)


class DataverseClient:
    def __init__(
        self,
        *,
        url: str,
        access_token: str | None = None,
        credential: TokenCredential | None = None,
        api_version: str = "9.2",
        timeout_seconds: int = 30,
    ) -> None:
        self._url = url.rstrip("/")
        self._access_token = access_token
        # A fixed access token wins; otherwise the credential caches and refreshes tokens.
        if not access_token and credential is None:
            credential = DefaultAzureCredential(
                exclude_interactive_browser_credential=True,
                exclude_visual_studio_code_credential=True,
                exclude_shared_token_cache_credential=True,
                exclude_powershell_credential=True,
                exclude_azure_cli_credential=False,
            )
        self._credential = credential
        self._api_version = api_version
        self._timeout_seconds = timeout_seconds

    @property
    def api_base(self) -> str:
        return f"{self._url}/api/data/v{self._api_version}"

    @property
    def scope(self) -> str:
        return f"{self._url}/.default"

    @classmethod
    def from_env(cls) -> "DataverseClient":
        load_dotenv(override=False)
        url = os.environ.get("DATAVERSE_URL")
        if not url:
            raise ValueError("Missing DATAVERSE_URL")

        return cls(
            url=url,
            access_token=os.environ.get("DATAVERSE_ACCESS_TOKEN") or None,
            api_version=os.environ.get("DATAVERSE_API_VERSION", "9.2"),
            timeout_seconds=int(os.environ.get("DATAVERSE_HTTP_TIMEOUT_SECONDS", "30")),
        )

    def get_bearer_token(self) -> str:
        if self._access_token:
            return self._access_token
        return self._credential.get_token(self.scope).token

    # -- transport --------------------------------------------------------

    def _send(
        self,
        method: str,
        path: str,
        *,
        bearer_token: str,
        params: dict[str, str] | None = None,
        body: dict[str, Any] | None = None,
    ) -> requests.Response:
        url = f"{self.api_base}/{path}"
        try:
            resp = requests.request(
                method,
                url,
                headers={
                    "Authorization": f"Bearer {bearer_token}",
                    "Accept": "application/json",
                    "Content-Type": "application/json; charset=utf-8",
                    "OData-MaxVersion": "4.0",
                    "OData-Version": "4.0",
                },
                params=params,
                json=body,
                timeout=self._timeout_seconds,
            )
        except requests.Timeout as e:
            raise OrganizationServiceTimeoutError(
                f"The request to {method} {path} timed out after {self._timeout_seconds}s"
            ) from e

        # Optional debug (safe): prints only URL/params, never tokens.
        if os.environ.get("DATAVERSE_DEBUG") in {"1", "true", "TRUE", "yes", "YES"}:
            print(f"[DATAVERSE_DEBUG] {method} {resp.url}")

        return resp

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        body: dict[str, Any] | None = None,
    ) -> requests.Response:
        resp = self._send(method, path, bearer_token=self.get_bearer_token(), params=params, body=body)
        if resp.status_code >= 400:
            raise fault_from_response(resp)
        return resp

    # -- OrganizationService ----------------------------------------------

    def execute(self, request: Any) -> Any:
        if isinstance(request, RetrieveVersionRequest):
            resp = self._request("GET", "RetrieveVersion()")
            return RetrieveVersionResponse(version=str(resp.json()["Version"]))

        if isinstance(request, ImportSolutionRequest):
            import_job_id = request.import_job_id or uuid.uuid4()
            body = {
                "CustomizationFile": base64.b64encode(request.customization_file).decode("ascii"),
                "OverwriteUnmanagedCustomizations": request.overwrite_unmanaged_customizations,
                "PublishWorkflows": request.publish_workflows,
                "ImportJobId": str(import_job_id),
            }
            logger.debug(
                "Importing solution package (%d bytes), import job %s",
                len(request.customization_file),
                import_job_id,
            )
            self._request("POST", "ImportSolution", body=body)
            return ImportSolutionResponse(import_job_id=import_job_id)

        raise TypeError(f"Unsupported request type: {type(request).__name__}")

    def retrieve_multiple(self, query: QueryExpression | QueryByAttribute) -> EntityCollection:
        resp = self._request(
            "GET",
            entity_set_name(query.entity_name),
            params=query.to_odata_params(),
        )
        payload = resp.json()
        rows = payload.get("value") if isinstance(payload, dict) else None

        id_attr = f"{query.entity_name}id"
        entities: list[Entity] = []
        for row in rows or []:
            if not isinstance(row, dict):
                continue
            attributes = {k: v for k, v in row.items() if not k.startswith("@")}
            raw_id = attributes.get(id_attr)
            if raw_id:
                attributes[id_attr] = uuid.UUID(str(raw_id))
            entities.append(
                Entity(
                    logical_name=query.entity_name,
                    id=attributes.get(id_attr),
                    attributes=attributes,
                )
            )
        return EntityCollection(entity_name=query.entity_name, entities=entities)

    def delete(self, entity_name: str, id: uuid.UUID) -> None:
        self._request("DELETE", f"{entity_set_name(entity_name)}({id})")
