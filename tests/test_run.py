"""
Tests for the CLI orchestration with a fake Azure DevOps client.
"""
import pytest
from rich.console import Console

import run
from activity_log import ActivityLog
from config import Settings
from errors import WorkItemFetchError, WorkItemUrlError
from models import ExistingTestCase, RelatedItem, WorkItemFields

URL = "https://dev.azure.com/contoso/Shop/_workitems/edit/42"


class FakeClient:
    """Serves one canned work item."""

    def __init__(self, settings, org_url, fail_connection=False):
        self.org_url = org_url
        self.fail_connection = fail_connection
        self.requested = []

    def check_connection(self):
        if self.fail_connection:
            raise WorkItemFetchError.for_status(None, 401)

    def get_work_item(self, item_id, project=None):
        self.requested.append((item_id, project))
        fields = WorkItemFields(
            id=item_id,
            title="Customer login",
            description="<p>Customers must be able to sign in with email and password.</p>",
            acceptance_criteria=(
                "<ul><li>Given a user When they login Then the dashboard is shown</li>"
                "<li>Invalid password shows an error</li></ul>"
            ),
            work_item_type="Product Backlog Item",
            state="New",
        )
        return fields, ["relation"]

    def get_related_items(self, relations, project=None):
        return [RelatedItem(id=7, title="Accounts", work_item_type="Epic",
                            state="Active", relationship="Parent")]

    def get_linked_test_cases(self, relations, project=None):
        return [
            ExistingTestCase(id=100, title="Verify login", state="Design"),
            ExistingTestCase(id=101, title="Verify login!", state="Ready"),
        ]


class TestRun:
    """Pipeline orchestration."""

    def setup_method(self):
        """Set up test fixtures."""
        self.clients = []

    def _factory(self, settings, org_url):
        client = FakeClient(settings, org_url)
        self.clients.append(client)
        return client

    def _settings(self, tmp_path):
        return Settings(
            ado_pat="secret",
            output_dir=str(tmp_path / "reports"),
            activity_log=str(tmp_path / "log.md"),
        )

    def test_end_to_end(self, tmp_path):
        settings = self._settings(tmp_path)
        log = ActivityLog(settings.activity_log, user="tester")
        report = run.run(URL, settings, client_factory=self._factory, log=log)

        assert self.clients[0].org_url == "https://dev.azure.com/contoso"
        assert self.clients[0].requested == [(42, "Shop")]
        assert len(report.scenarios) == 2
        assert report.test_health == []
        assert (tmp_path / "reports" / "pbi" / "42" / "story-analysis.md").exists()

        content = (tmp_path / "log.md").read_text(encoding="utf-8")
        assert "**IN_PROGRESS**" in content
        assert "**SUCCESS**" in content

    def test_check_tests_reviews_linked_cases(self, tmp_path):
        report = run.run(
            URL, self._settings(tmp_path), check_tests=True,
            client_factory=self._factory,
            log=ActivityLog(tmp_path / "log.md", user="tester"),
        )
        assert [h.action_required for h in report.test_health] == [
            "Review Steps & Move to Ready",
            "Possible Duplicate of 100. Review & Retire.",
        ]
        analysis = (tmp_path / "reports" / "pbi" / "42" / "story-analysis.md").read_text(encoding="utf-8")
        assert "## Linked Test Cases" in analysis

    def test_project_name_is_not_read_as_markup(self, tmp_path, monkeypatch):
        recorder = Console(record=True, width=200)
        monkeypatch.setattr(run, "console", recorder)
        run.run(
            "https://dev.azure.com/contoso/Shop%5Bbeta%5D/_workitems/edit/42",
            self._settings(tmp_path), client_factory=self._factory,
            log=ActivityLog(tmp_path / "log.md", user="tester"),
        )
        assert "contoso/Shop[beta]" in recorder.export_text()

    def test_invalid_target(self, tmp_path):
        with pytest.raises(WorkItemUrlError):
            run.run("not a url", self._settings(tmp_path), client_factory=self._factory,
                    log=ActivityLog(tmp_path / "log.md", user="tester"))
        assert self.clients == []


class TestMain:
    """Exit codes and activity logging of the CLI."""

    @pytest.fixture(autouse=True)
    def env(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("ADO_PAT", "secret")
        monkeypatch.setenv("ACTIVITY_LOG", str(tmp_path / "log.md"))
        monkeypatch.setenv("OUTPUT_DIR", str(tmp_path / "reports"))
        self.log_path = tmp_path / "log.md"

    def test_invalid_url_exits_with_one(self):
        with pytest.raises(SystemExit) as info:
            run.main(["definitely-not-a-url"])
        assert info.value.code == 1
        content = self.log_path.read_text(encoding="utf-8")
        assert "**JOB_STARTED**" in content
        assert "**FAILURE**" in content
        assert "**JOB_COMPLETED**" in content

    def test_fetch_failure_exits_with_one(self, monkeypatch):
        monkeypatch.setattr(
            run, "_default_client",
            lambda settings, org_url: FakeClient(settings, org_url, fail_connection=True),
        )
        with pytest.raises(SystemExit) as info:
            run.main([URL])
        assert info.value.code == 1
        assert "Authentication failed" in self.log_path.read_text(encoding="utf-8")

    def test_success_does_not_exit(self, monkeypatch, tmp_path):
        monkeypatch.setattr(run, "_default_client", FakeClient)
        run.main([URL, "--output", str(tmp_path / "custom")])
        assert (tmp_path / "custom" / "pbi" / "42" / "gherkin-spec.feature").exists()
        assert "**JOB_COMPLETED**" in self.log_path.read_text(encoding="utf-8")

    def test_interrupt_exits_with_130(self, monkeypatch):
        def interrupted(*args, **kwargs):
            raise KeyboardInterrupt

        monkeypatch.setattr(run, "run", interrupted)
        with pytest.raises(SystemExit) as info:
            run.main([URL])
        assert info.value.code == 130
