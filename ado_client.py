"""
ado_client.py – Azure DevOps work-item retrieval.

Uses the official `azure-devops` Python SDK for work-item reads and a raw
`requests` session for the connection probe, which the SDK does not expose
with a timeout.  Every failure to fetch the analysed item surfaces as one
`WorkItemFetchError`; failures on related items only drop that item.
"""

from __future__ import annotations

import logging
import re
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Iterable

import requests
from azure.devops.connection import Connection
from azure.devops.exceptions import (
    AzureDevOpsAuthenticationError,
    AzureDevOpsServiceError,
)
from msrest.authentication import BasicAuthentication
from msrest.exceptions import ClientException

from config import Settings
from errors import WorkItemFetchError
from models import ExistingTestCase, RelatedItem, WorkItemFields

logger = logging.getLogger("pbi-analyzer")

RELATION_TYPES = {
    "System.LinkTypes.Hierarchy-Forward": "Child",
    "System.LinkTypes.Hierarchy-Reverse": "Parent",
    "System.LinkTypes.Related": "Related",
    "Microsoft.VSTS.Common.TestedBy-Forward": "Tested By",
    "Microsoft.VSTS.Common.TestedBy-Reverse": "Tests",
    "System.LinkTypes.Dependency-Forward": "Successor",
    "System.LinkTypes.Dependency-Reverse": "Predecessor",
}

_ID_FROM_URL_RE = re.compile(r"/workItems/(\d+)/?$", re.IGNORECASE)
_STATUS_RE = re.compile(r"\b([1-5]\d\d) status code")
_NOT_FOUND_MARKERS = ("tf401232", "does not exist")


# ── Field / relation helpers ────────────────────────────────────────────

def _display_name(value: Any) -> str:
    if isinstance(value, dict):
        return value.get("displayName") or value.get("uniqueName") or ""
    return str(value or "")


def _split_tags(raw: str | None) -> tuple[str, ...]:
    return tuple(t.strip() for t in (raw or "").split(";") if t.strip())


def _to_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def map_fields(item_id: int, fields: dict[str, Any] | None) -> WorkItemFields:
    """Build a `WorkItemFields` snapshot from the raw ADO field bag."""
    f = fields or {}
    return WorkItemFields(
        id=item_id,
        title=f.get("System.Title", "") or "",
        description=f.get("System.Description", "") or "",
        acceptance_criteria=f.get("Microsoft.VSTS.Common.AcceptanceCriteria", "") or "",
        work_item_type=f.get("System.WorkItemType", "") or "",
        state=f.get("System.State", "") or "",
        priority=_to_int(f.get("Microsoft.VSTS.Common.Priority"), 2),
        tags=_split_tags(f.get("System.Tags")),
        area_path=f.get("System.AreaPath", "") or "",
        iteration_path=f.get("System.IterationPath", "") or "",
        assigned_to=_display_name(f.get("System.AssignedTo")),
    )


def extract_id_from_url(url: str | None) -> int | None:
    """Work-item API URLs end with the ID: ``…/workItems/{id}``."""
    match = _ID_FROM_URL_RE.search(url or "")
    return int(match.group(1)) if match else None


def status_of(exc: Exception) -> int | None:
    """Best-effort HTTP status for an SDK / requests exception."""
    if isinstance(exc, AzureDevOpsAuthenticationError):
        return 401
    if isinstance(exc, requests.HTTPError) and exc.response is not None:
        return exc.response.status_code
    message = str(exc)
    if isinstance(exc, AzureDevOpsServiceError) and any(
        marker in message.lower() for marker in _NOT_FOUND_MARKERS
    ):
        return 404
    match = _STATUS_RE.search(message)
    return int(match.group(1)) if match else None


# ── Main client ─────────────────────────────────────────────────────────

class ADOClient:
    """Wraps every ADO interaction needed by the analyzer."""

    def __init__(
        self,
        settings: Settings,
        org_url: str | None = None,
        wit_client: Any = None,
        session: requests.Session | None = None,
    ) -> None:
        self._settings = settings
        self._org_url = (org_url or settings.ado_org_url).rstrip("/")

        if wit_client is None:
            creds = BasicAuthentication("", settings.ado_pat)
            connection = Connection(base_url=self._org_url, creds=creds)
            wit_client = connection.clients.get_work_item_tracking_client()
            # msrest otherwise waits 100 s per request
            wit_client.config.connection.timeout = settings.request_timeout
        self._wit = wit_client

        # REST session for endpoints the SDK does not cover
        self._session = session or requests.Session()
        self._session.auth = ("", settings.ado_pat)

    @property
    def org_url(self) -> str:
        return self._org_url

    # ── Connection ──────────────────────────────────────────────────────

    def check_connection(self) -> None:
        """Verify the PAT against the organisation before fetching anything."""
        url = f"{self._org_url}/_apis/connectionData"
        try:
            resp = self._session.get(url, timeout=self._settings.request_timeout)
        except requests.RequestException as exc:
            raise WorkItemFetchError(
                f"Could not reach {self._org_url}: {exc}"
            ) from exc

        # ADO answers 203 with an HTML sign-in page when the PAT is rejected.
        if resp.status_code in (401, 203):
            raise WorkItemFetchError.for_status(None, 401)
        if resp.status_code >= 400:
            raise WorkItemFetchError(
                f"Failed to connect to {self._org_url} "
                f"(HTTP {resp.status_code})",
                status_code=resp.status_code,
            )
        logger.debug("Connected to %s", self._org_url)

    # ── Work items ──────────────────────────────────────────────────────

    def get_work_item(
        self, item_id: int, project: str | None = None
    ) -> tuple[WorkItemFields, list[Any]]:
        """Fetch one work item with its relations.

        Raises:
            WorkItemFetchError: on any authentication, lookup or transport failure.
        """
        try:
            wi = self._wit.get_work_item(item_id, project=project, expand="Relations")
        except (ClientException, requests.RequestException) as exc:
            raise WorkItemFetchError.for_status(item_id, status_of(exc), str(exc)) from exc

        if wi is None:
            raise WorkItemFetchError.for_status(item_id, 404)

        logger.info("Fetched work item #%s", item_id)
        return map_fields(wi.id or item_id, wi.fields), list(wi.relations or [])

    def _fetch_quietly(self, item_id: int, project: str | None) -> Any:
        try:
            return self._wit.get_work_item(item_id, project=project)
        except (ClientException, requests.RequestException) as exc:
            logger.warning("Skipping related work item #%s: %s", item_id, exc)
            return None

    def _fetch_many(self, ids: list[int], project: str | None) -> dict[int, Any]:
        """Fetch *ids* concurrently; failed items are simply absent."""
        if not ids:
            return {}
        workers = max(1, min(self._settings.fetch_workers, len(ids)))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            items = list(pool.map(lambda i: self._fetch_quietly(i, project), ids))
        return {i: item for i, item in zip(ids, items) if item is not None}

    def _typed_relations(
        self, relations: Iterable[Any], wanted: set[str] | None = None
    ) -> list[tuple[int, str]]:
        pairs: list[tuple[int, str]] = []
        seen: set[int] = set()
        for rel in relations:
            kind = RELATION_TYPES.get(getattr(rel, "rel", "") or "")
            if not kind or (wanted and kind not in wanted):
                continue
            rel_id = extract_id_from_url(getattr(rel, "url", None))
            if rel_id is None or rel_id in seen:
                continue
            seen.add(rel_id)
            pairs.append((rel_id, kind))
        return pairs

    def get_related_items(
        self, relations: Iterable[Any], project: str | None = None
    ) -> list[RelatedItem]:
        """Resolve linked work items, keeping the order of *relations*."""
        pairs = self._typed_relations(relations)[: self._settings.related_item_limit]
        fetched = self._fetch_many([rel_id for rel_id, _ in pairs], project)

        results: list[RelatedItem] = []
        for rel_id, kind in pairs:
            item = fetched.get(rel_id)
            if item is None:
                continue
            f = item.fields or {}
            results.append(
                RelatedItem(
                    id=rel_id,
                    title=f.get("System.Title", "") or "",
                    work_item_type=f.get("System.WorkItemType", "") or "Unknown",
                    state=f.get("System.State", "") or "",
                    relationship=kind,
                    description=f.get("System.Description", "") or "",
                )
            )
        logger.info("Resolved %d of %d related item(s)", len(results), len(pairs))
        return results

    def get_linked_test_cases(
        self, relations: Iterable[Any], project: str | None = None
    ) -> list[ExistingTestCase]:
        """Return every Test Case linked to the item via *Tested By*."""
        pairs = self._typed_relations(relations, wanted={"Tested By"})
        fetched = self._fetch_many([rel_id for rel_id, _ in pairs], project)

        results: list[ExistingTestCase] = []
        for rel_id, _ in pairs:
            item = fetched.get(rel_id)
            if item is None:
                continue
            f = item.fields or {}
            if f.get("System.WorkItemType") != "Test Case":
                continue
            results.append(
                ExistingTestCase(
                    id=rel_id,
                    title=f.get("System.Title", "") or "",
                    state=f.get("System.State", "") or "",
                )
            )
        return results
