"""
Tests for the Azure DevOps client, using an in-memory work-item service.
"""
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
import requests
from azure.devops.exceptions import (
    AzureDevOpsAuthenticationError,
    AzureDevOpsClientRequestError,
)

from ado_client import ADOClient, extract_id_from_url, map_fields, status_of
from config import Settings
from errors import WorkItemFetchError

API = "https://dev.azure.com/contoso/_apis/wit/workItems"


def _item(item_id, title, wi_type="Task", state="New", relations=None, **extra):
    fields = {
        "System.Title": title,
        "System.WorkItemType": wi_type,
        "System.State": state,
    }
    fields.update(extra)
    return SimpleNamespace(id=item_id, fields=fields, relations=relations)


def _rel(kind, item_id):
    return SimpleNamespace(rel=kind, url=f"{API}/{item_id}")


class FakeWitClient:
    """Stand-in for the SDK work-item tracking client."""

    def __init__(self, items=None, errors=None):
        self.items = items or {}
        self.errors = errors or {}
        self.calls = []

    def get_work_item(self, id, project=None, fields=None, as_of=None, expand=None):
        self.calls.append((id, project, expand))
        if id in self.errors:
            raise self.errors[id]
        return self.items.get(id)


def _client(wit=None, session=None, **settings):
    return ADOClient(
        Settings(ado_org_url="https://dev.azure.com/contoso", ado_pat="secret", **settings),
        wit_client=wit or FakeWitClient(),
        session=session or MagicMock(),
    )


class TestHelpers:
    """Field mapping and error classification."""

    def test_map_fields(self):
        fields = map_fields(5, {
            "System.Title": "Login",
            "System.Tags": "auth; web ;",
            "System.AssignedTo": {"displayName": "Sam Lee", "uniqueName": "sam@x"},
            "Microsoft.VSTS.Common.Priority": "1",
            "Microsoft.VSTS.Common.AcceptanceCriteria": "<li>Works well</li>",
        })
        assert fields.id == 5
        assert fields.title == "Login"
        assert fields.tags == ("auth", "web")
        assert fields.assigned_to == "Sam Lee"
        assert fields.priority == 1
        assert fields.acceptance_criteria == "<li>Works well</li>"
        assert fields.description == ""

    def test_map_fields_defaults(self):
        fields = map_fields(9, None)
        assert fields.title == ""
        assert fields.priority == 2
        assert fields.tags == ()

    def test_extract_id_from_url(self):
        assert extract_id_from_url(f"{API}/123") == 123
        assert extract_id_from_url("https://example.com/other") is None
        assert extract_id_from_url(None) is None

    def test_status_of_auth_error(self):
        assert status_of(AzureDevOpsAuthenticationError("Unauthorized")) == 401

    def test_status_of_message(self):
        exc = AzureDevOpsClientRequestError("Operation returned a 404 status code.")
        assert status_of(exc) == 404

    def test_status_of_http_error(self):
        response = requests.Response()
        response.status_code = 503
        assert status_of(requests.HTTPError(response=response)) == 503

    def test_status_unknown(self):
        assert status_of(AzureDevOpsClientRequestError("connection reset")) is None


class TestGetWorkItem:
    """Fetching the analysed item."""

    def test_returns_fields_and_relations(self):
        relations = [_rel("System.LinkTypes.Hierarchy-Reverse", 2)]
        wit = FakeWitClient({1: _item(1, "Login", "Product Backlog Item", relations=relations)})
        fields, rels = _client(wit).get_work_item(1, "Shop")
        assert fields.title == "Login"
        assert fields.work_item_type == "Product Backlog Item"
        assert rels == relations
        assert wit.calls == [(1, "Shop", "Relations")]

    def test_authentication_failure(self):
        wit = FakeWitClient(errors={1: AzureDevOpsAuthenticationError("Unauthorized")})
        with pytest.raises(WorkItemFetchError, match="Check your PAT") as info:
            _client(wit).get_work_item(1)
        assert info.value.status_code == 401

    def test_not_found_from_status(self):
        wit = FakeWitClient(errors={
            1: AzureDevOpsClientRequestError("Operation returned a 404 status code."),
        })
        with pytest.raises(WorkItemFetchError, match="not found") as info:
            _client(wit).get_work_item(1)
        assert info.value.status_code == 404
        assert info.value.work_item_id == 1

    def test_missing_item_is_not_found(self):
        with pytest.raises(WorkItemFetchError, match="Work item 8 not found"):
            _client().get_work_item(8)

    def test_other_failure_keeps_detail(self):
        wit = FakeWitClient(errors={1: AzureDevOpsClientRequestError("socket closed")})
        with pytest.raises(WorkItemFetchError, match="socket closed") as info:
            _client(wit).get_work_item(1)
        assert info.value.status_code is None


class TestRelatedItems:
    """Related-item resolution."""

    def setup_method(self):
        """Set up test fixtures."""
        self.wit = FakeWitClient(
            items={
                2: _item(2, "Accounts epic", "Epic", "Active"),
                3: _item(3, "Build API", "Task", "Done"),
                4: _item(4, "Login test", "Test Case", "Design"),
                5: _item(5, "Related bug", "Bug", "New"),
            },
            errors={6: AzureDevOpsClientRequestError("Operation returned a 500 status code.")},
        )
        self.relations = [
            _rel("System.LinkTypes.Hierarchy-Reverse", 2),
            _rel("System.LinkTypes.Hierarchy-Forward", 3),
            _rel("AttachedFile", 99),
            _rel("System.LinkTypes.Hierarchy-Forward", 6),
            _rel("Microsoft.VSTS.Common.TestedBy-Forward", 4),
            _rel("System.LinkTypes.Related", 5),
        ]

    def test_description_carried(self):
        self.wit.items[2].fields["System.Description"] = "<p>Grow accounts</p>"
        related = _client(self.wit).get_related_items(self.relations)
        assert related[0].description == "<p>Grow accounts</p>"
        assert related[1].description == ""

    def test_order_and_relationship_kept(self):
        related = _client(self.wit).get_related_items(self.relations, "Shop")
        assert [(r.id, r.relationship) for r in related] == [
            (2, "Parent"), (3, "Child"), (4, "Tested By"), (5, "Related"),
        ]
        assert related[0].work_item_type == "Epic"

    def test_failed_item_omitted_with_warning(self, caplog):
        with caplog.at_level("WARNING", logger="pbi-analyzer"):
            related = _client(self.wit).get_related_items(self.relations)
        assert 6 not in [r.id for r in related]
        assert "#6" in caplog.text

    def test_limit(self):
        related = _client(self.wit, related_item_limit=2).get_related_items(self.relations)
        assert [r.id for r in related] == [2, 3]

    def test_linked_test_cases(self):
        relations = self.relations + [_rel("Microsoft.VSTS.Common.TestedBy-Forward", 5)]
        tests = _client(self.wit).get_linked_test_cases(relations)
        assert [(t.id, t.title, t.state) for t in tests] == [(4, "Login test", "Design")]


class TestCheckConnection:
    """Connection probe."""

    def _session(self, status=200, error=None):
        session = MagicMock()
        if error is not None:
            session.get.side_effect = error
        else:
            session.get.return_value = SimpleNamespace(status_code=status)
        return session

    def test_ok(self):
        session = self._session(200)
        _client(session=session, request_timeout=5.0).check_connection()
        session.get.assert_called_once_with(
            "https://dev.azure.com/contoso/_apis/connectionData", timeout=5.0
        )

    @pytest.mark.parametrize("status", [401, 203])
    def test_rejected_pat(self, status):
        with pytest.raises(WorkItemFetchError, match="Authentication failed") as info:
            _client(session=self._session(status)).check_connection()
        assert info.value.status_code == 401

    def test_server_error(self):
        with pytest.raises(WorkItemFetchError, match="HTTP 500"):
            _client(session=self._session(500)).check_connection()

    def test_unreachable(self):
        session = self._session(error=requests.ConnectionError("dns failure"))
        with pytest.raises(WorkItemFetchError, match="Could not reach"):
            _client(session=session).check_connection()


class TestSdkClientSetup:
    """Construction of the SDK work-item client."""

    def test_request_timeout_applied(self, monkeypatch):
        wit = SimpleNamespace(config=SimpleNamespace(connection=SimpleNamespace(timeout=100)))
        created = {}

        class FakeConnection:
            def __init__(self, base_url=None, creds=None):
                created["base_url"] = base_url
                self.clients = SimpleNamespace(get_work_item_tracking_client=lambda: wit)

        monkeypatch.setattr("ado_client.Connection", FakeConnection)
        ADOClient(
            Settings(ado_org_url="https://dev.azure.com/contoso/", ado_pat="secret", request_timeout=7.5),
            session=MagicMock(),
        )
        assert created["base_url"] == "https://dev.azure.com/contoso"
        assert wit.config.connection.timeout == 7.5
