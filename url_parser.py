"""
url_parser.py – Resolve a work-item URL (or bare ID) into a WorkItemRef.

Supported URL forms:
  https://dev.azure.com/{org}/{project}/_workitems/edit/{id}
  https://{org}.visualstudio.com/{project}/_workitems/edit/{id}
  https://dev.azure.com/{org}/{project}/_workitems?id={id}
"""

from __future__ import annotations

import re
from urllib.parse import unquote

from config import Settings
from errors import WorkItemUrlError
from models import WorkItemRef

_DEV_AZURE_EDIT = re.compile(
    r"^https?://dev\.azure\.com/([^/]+)/([^/]+)/_workitems/edit/(\d+)", re.IGNORECASE
)
_VISUALSTUDIO_EDIT = re.compile(
    r"^https?://([^./]+)\.visualstudio\.com/([^/]+)/_workitems/edit/(\d+)", re.IGNORECASE
)
_DEV_AZURE_QUERY = re.compile(
    r"^https?://dev\.azure\.com/([^/]+)/([^/]+)/_workitems\?(?:.*&)?id=(\d+)",
    re.IGNORECASE,
)


def parse_work_item_url(url: str) -> WorkItemRef:
    """Parse an Azure DevOps work-item URL.

    Raises:
        WorkItemUrlError: if *url* matches none of the supported forms.
    """
    candidate = (url or "").strip()

    for pattern, host in (
        (_DEV_AZURE_EDIT, "dev.azure.com"),
        (_VISUALSTUDIO_EDIT, "visualstudio.com"),
        (_DEV_AZURE_QUERY, "dev.azure.com"),
    ):
        match = pattern.match(candidate)
        if not match:
            continue
        org, project, item_id = match.groups()
        if host == "visualstudio.com":
            org_url = f"https://{org}.visualstudio.com"
        else:
            org_url = f"https://dev.azure.com/{org}"
        return WorkItemRef(
            organization=org,
            project=unquote(project),
            work_item_id=int(item_id),
            org_url=org_url,
        )

    raise WorkItemUrlError(
        "Invalid Azure DevOps URL format. Expected formats:\n"
        "  - https://dev.azure.com/{org}/{project}/_workitems/edit/{id}\n"
        "  - https://{org}.visualstudio.com/{project}/_workitems/edit/{id}\n"
        f"Received: {url}"
    )


def resolve_work_item(target: str, settings: Settings) -> WorkItemRef:
    """Accept either a full URL or a numeric ID resolved against *settings*."""
    candidate = (target or "").strip()
    if candidate.isascii() and candidate.isdigit():
        item_id = int(candidate)
        if item_id <= 0:
            raise WorkItemUrlError(f"Work item ID must be positive, got {target!r}")
        if not settings.ado_org_url or not settings.ado_project:
            raise WorkItemUrlError(
                "A bare work item ID needs ADO_ORG_URL and ADO_PROJECT to be set; "
                "pass the full work item URL instead."
            )
        org = settings.ado_org_url.rstrip("/").rsplit("/", 1)[-1]
        return WorkItemRef(
            organization=org,
            project=settings.ado_project,
            work_item_id=item_id,
            org_url=settings.ado_org_url.rstrip("/"),
        )
    return parse_work_item_url(candidate)
