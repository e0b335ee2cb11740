"""
Integration tests for tracker operations.

Tests cover:
- Project listing and lookup
- Issue create/list/get/update/assign/delete
- Labels, comments and persons
- All tracker writes use REST transactions
"""

import pytest

from huly_sdk.errors import NotFoundError
from huly_sdk.primitives import CHAT_MESSAGE, CONTACT_PERSON, TAG_ELEMENT, TrackerClass


@pytest.fixture(autouse=True)
def tracker(platform):
    """Seed two projects, one existing issue and two persons."""
    platform.add_doc(
        TrackerClass.PROJECT,
        {
            "_id": "proj-1",
            "identifier": "PROJ",
            "name": "Project",
            "sequence": 3,
            "defaultIssueStatus": "status-backlog",
        },
    )
    platform.add_doc(TrackerClass.PROJECT, {"_id": "proj-2", "identifier": "OPS", "name": "Ops"})
    platform.add_doc(
        TrackerClass.ISSUE,
        {"_id": "issue-3", "space": "proj-1", "identifier": "PROJ-3", "title": "Existing", "priority": 1},
    )
    platform.add_doc(TrackerClass.ISSUE, {"_id": "issue-9", "space": "proj-2", "identifier": "OPS-1", "title": "Other"})
    platform.add_doc(CONTACT_PERSON, {"_id": "person-1", "name": "Ada", "city": "London"})
    platform.add_doc(CONTACT_PERSON, {"_id": "person-2", "name": "Grace"})


class TestProjects:
    """Tests for project queries."""

    @pytest.mark.asyncio
    async def test_list_projects(self, client, platform):
        """All projects are listed with the default limit."""
        projects = await client.issues.list_projects()

        assert {p.identifier for p in projects} == {"PROJ", "OPS"}
        assert platform.find_requests[-1]["options"] == {"limit": 100}

    @pytest.mark.asyncio
    async def test_get_project(self, client):
        """Lookup by identifier."""
        project = await client.issues.get_project("PROJ")

        assert project.id == "proj-1"
        assert project.sequence == 3
        assert await client.issues.get_project("NOPE") is None


class TestIssues:
    """Tests for issue operations."""

    @pytest.mark.asyncio
    async def test_create_issue(self, client, platform):
        """New issues are numbered after the project sequence."""
        issue = await client.issues.create_issue("PROJ", "Crash on save", "Steps...", priority=2)

        assert issue.identifier == "PROJ-4"
        assert issue.title == "Crash on save"
        assert issue.number == 4
        assert issue.status == "status-backlog"

        tx = platform.rest_txs[0]
        assert tx["objectClass"] == TrackerClass.ISSUE
        assert tx["objectSpace"] == "proj-1"
        assert tx["attachedTo"] == "proj-1"
        assert tx["attachedToClass"] == TrackerClass.PROJECT
        assert tx["collection"] == "issues"
        assert tx["attributes"]["kind"] == TrackerClass.ISSUE_KIND
        assert tx["attributes"]["assignee"] is None
        assert tx["attributes"]["parents"] == []
        assert platform.socket_requests == []

    @pytest.mark.asyncio
    async def test_create_issue_missing_project(self, client):
        """Unknown project is NotFound."""
        with pytest.raises(NotFoundError) as exc_info:
            await client.issues.create_issue("NOPE", "x")

        assert exc_info.value.resource_type == "project"

    @pytest.mark.asyncio
    async def test_list_issues_scoped_to_project(self, client, platform):
        """Project filter restricts to its space, newest first."""
        issues = await client.issues.list_issues("PROJ")

        assert [i.identifier for i in issues] == ["PROJ-3"]
        assert platform.find_requests[-1]["query"] == {"space": "proj-1"}
        assert platform.find_requests[-1]["options"]["sort"] == {"modifiedOn": -1}

    @pytest.mark.asyncio
    async def test_list_all_issues(self, client):
        """Without a project all issues are listed."""
        issues = await client.issues.list_issues()

        assert len(issues) == 2

    @pytest.mark.asyncio
    async def test_list_issues_missing_project(self, client):
        """Unknown project is NotFound."""
        with pytest.raises(NotFoundError):
            await client.issues.list_issues("NOPE")

    @pytest.mark.asyncio
    async def test_get_issue(self, client):
        """Lookup by identifier."""
        issue = await client.issues.get_issue("PROJ-3")

        assert issue.id == "issue-3"
        assert issue.priority == 1
        assert await client.issues.get_issue("PROJ-99") is None

    @pytest.mark.asyncio
    async def test_get_issue_injects_identifier(self, client, platform):
        """Identifier is filled in when the record omits it."""
        platform.find_body = '{"value": [{"_id": "issue-7", "title": "Bare"}]}'

        issue = await client.issues.get_issue("PROJ-7")

        assert issue.identifier == "PROJ-7"

    @pytest.mark.asyncio
    async def test_update_issue(self, client, platform):
        """Only given fields are patched."""
        updated = await client.issues.update_issue("PROJ-3", title="Renamed", status="status-done")

        assert updated.title == "Renamed"
        assert updated.status == "status-done"
        assert updated.priority == 1
        assert platform.rest_txs[0]["operations"] == {"title": "Renamed", "status": "status-done"}

    @pytest.mark.asyncio
    async def test_update_missing_issue(self, client):
        """Unknown issue is NotFound."""
        with pytest.raises(NotFoundError):
            await client.issues.update_issue("PROJ-99", title="x")

    @pytest.mark.asyncio
    async def test_assign_and_unassign(self, client, platform):
        """Assignee is set and cleared."""
        assigned = await client.issues.assign_issue("PROJ-3", "person-1")
        assert assigned.assignee == "person-1"

        unassigned = await client.issues.assign_issue("PROJ-3", None)

        assert unassigned.assignee is None
        assert platform.rest_txs[-1]["operations"] == {"assignee": None}

    @pytest.mark.asyncio
    async def test_delete_issue(self, client, platform):
        """Deleted issues are gone."""
        await client.issues.delete_issue("PROJ-3")

        assert await client.issues.get_issue("PROJ-3") is None
        assert platform.rest_txs[0]["objectId"] == "issue-3"


class TestIssueCollections:
    """Tests for labels and comments."""

    @pytest.mark.asyncio
    async def test_add_label(self, client, platform):
        """Labels attach to the issue's labels collection."""
        label_id = await client.issues.add_label("PROJ-3", "bug", color=5)

        tx = platform.rest_txs[0]
        assert tx["objectId"] == label_id
        assert tx["objectClass"] == TAG_ELEMENT
        assert tx["attachedTo"] == "issue-3"
        assert tx["collection"] == "labels"
        assert tx["attributes"] == {"title": "bug", "color": 5, "tag": "issue-3"}

    @pytest.mark.asyncio
    async def test_add_comment(self, client, platform):
        """Comments attach to the issue's comments collection."""
        await client.issues.add_comment("PROJ-3", "Looking into it")

        tx = platform.rest_txs[0]
        assert tx["objectClass"] == CHAT_MESSAGE
        assert tx["collection"] == "comments"
        assert tx["attributes"]["message"] == "Looking into it"
        assert tx["attributes"]["attachedTo"] == "issue-3"

    @pytest.mark.asyncio
    async def test_label_on_missing_issue(self, client):
        """Unknown issue is NotFound."""
        with pytest.raises(NotFoundError):
            await client.issues.add_label("PROJ-99", "bug")


class TestPersons:
    """Tests for contacts."""

    @pytest.mark.asyncio
    async def test_list_persons(self, client):
        """Persons decode with optional fields."""
        persons = await client.issues.list_persons()

        assert [p.name for p in persons] == ["Ada", "Grace"]
        assert persons[1].city is None
