"""
Tracker operations: projects, issues, labels, comments and persons.

All writes go through REST transactions.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from .errors import NotFoundError
from .models import FindOptions, Issue, Person, Project, SortingOrder
from .primitives import (
    CHAT_MESSAGE,
    CONTACT_PERSON,
    TAG_ELEMENT,
    CoreSpace,
    TrackerClass,
)

if TYPE_CHECKING:
    from .client import HulyClient

logger = logging.getLogger(__name__)


class IssueClient:
    """Tracker operations bound to a HulyClient."""

    def __init__(self, client: HulyClient) -> None:
        self._client = client

    # -------------------------------------------------------------------
    # Projects
    # -------------------------------------------------------------------

    async def list_projects(self, limit: int = 100) -> list[Project]:
        return await self._client.find_all(
            TrackerClass.PROJECT, {}, FindOptions(limit=limit), decoder=Project.from_dict
        )

    async def get_project(self, identifier: str) -> Project | None:
        return await self._client.find_one(
            TrackerClass.PROJECT, {"identifier": identifier}, decoder=Project.from_dict
        )

    async def _require_project(self, identifier: str) -> Project:
        project = await self.get_project(identifier)
        if project is None:
            raise NotFoundError(
                f"Project {identifier} not found",
                resource_type="project",
                resource_id=identifier,
            )
        return project

    # -------------------------------------------------------------------
    # Issues
    # -------------------------------------------------------------------

    async def list_issues(
        self,
        project_identifier: str | None = None,
        limit: int = 50,
    ) -> list[Issue]:
        """List issues, most recently modified first.

        Raises:
            NotFoundError: If a project identifier is given but unknown
        """
        query: dict[str, Any] = {}
        if project_identifier is not None:
            project = await self._require_project(project_identifier)
            query["space"] = project.id
        return await self._client.find_all(
            TrackerClass.ISSUE,
            query,
            FindOptions(limit=limit, sort={"modifiedOn": SortingOrder.DESCENDING}),
            decoder=Issue.from_dict,
        )

    async def get_issue(self, identifier: str) -> Issue | None:
        issue = await self._client.find_one(
            TrackerClass.ISSUE, {"identifier": identifier}, decoder=Issue.from_dict
        )
        if issue is not None and not issue.identifier:
            issue = issue.with_identifier(identifier)
        return issue

    async def _require_issue(self, identifier: str) -> Issue:
        issue = await self.get_issue(identifier)
        if issue is None:
            raise NotFoundError(
                f"Issue {identifier} not found",
                resource_type="issue",
                resource_id=identifier,
            )
        return issue

    async def create_issue(
        self,
        project_identifier: str,
        title: str,
        description: str | None = None,
        priority: int = 0,
    ) -> Issue:
        """Create an issue in a project's ``issues`` collection.

        The issue number is the project's sequence plus one.

        Returns:
            The issue as re-read from the server, or a locally built one if
            the re-read finds nothing
        """
        project = await self._require_project(project_identifier)
        number = (project.sequence or 0) + 1
        identifier = f"{project_identifier}-{number}"

        attributes: dict[str, Any] = {
            "title": title,
            "description": description or "",
            "status": project.default_issue_status or "",
            "priority": priority,
            "number": number,
            "identifier": identifier,
            "kind": TrackerClass.ISSUE_KIND,
            "assignee": None,
            "component": None,
            "estimation": 0,
            "remainingTime": 0,
            "reportedTime": 0,
            "reports": 0,
            "subIssues": 0,
            "parents": [],
            "childInfo": [],
            "dueDate": None,
        }
        issue_id = await self._client.add_collection(
            TrackerClass.ISSUE,
            project.id,
            project.id,
            TrackerClass.PROJECT,
            "issues",
            attributes,
        )

        created = await self.get_issue(identifier)
        if created is not None:
            logger.info(f"Issue created: {identifier}")
            return created

        logger.info(f"Issue created (basic response): {identifier}")
        return Issue(
            id=issue_id,
            space=project.id,
            identifier=identifier,
            title=title,
            description=description,
            status=project.default_issue_status,
            priority=priority,
            number=number,
        )

    async def update_issue(
        self,
        identifier: str,
        title: str | None = None,
        description: str | None = None,
        priority: int | None = None,
        status: str | None = None,
    ) -> Issue:
        """Patch the given fields and return the re-read issue."""
        issue = await self._require_issue(identifier)
        operations: dict[str, Any] = {}
        if title is not None:
            operations["title"] = title
        if description is not None:
            operations["description"] = description
        if priority is not None:
            operations["priority"] = priority
        if status is not None:
            operations["status"] = status

        await self._client.update_doc(
            TrackerClass.ISSUE, issue.space or CoreSpace.SPACE, issue.id, operations
        )
        return await self.get_issue(identifier) or issue

    async def delete_issue(self, identifier: str) -> None:
        issue = await self._require_issue(identifier)
        await self._client.remove_doc(TrackerClass.ISSUE, issue.space or CoreSpace.SPACE, issue.id)
        logger.info(f"Issue deleted: {identifier}")

    async def assign_issue(self, identifier: str, person_id: str | None) -> Issue:
        """Set or clear (``None``) the assignee."""
        issue = await self._require_issue(identifier)
        await self._client.update_doc(
            TrackerClass.ISSUE,
            issue.space or CoreSpace.SPACE,
            issue.id,
            {"assignee": person_id},
        )
        return await self.get_issue(identifier) or issue

    async def add_label(self, issue_identifier: str, title: str, color: int = 0) -> str:
        """Attach a label to an issue; returns the label id."""
        issue = await self._require_issue(issue_identifier)
        return await self._client.add_collection(
            TAG_ELEMENT,
            CoreSpace.SPACE,
            issue.id,
            TrackerClass.ISSUE,
            "labels",
            {"title": title, "color": color, "tag": issue.id},
        )

    async def add_comment(self, issue_identifier: str, message: str) -> str:
        """Post a comment on an issue; returns the comment id."""
        issue = await self._require_issue(issue_identifier)
        return await self._client.add_collection(
            CHAT_MESSAGE,
            CoreSpace.SPACE,
            issue.id,
            TrackerClass.ISSUE,
            "comments",
            {
                "message": message,
                "attachedTo": issue.id,
                "attachedToClass": TrackerClass.ISSUE,
            },
        )

    # -------------------------------------------------------------------
    # Contacts
    # -------------------------------------------------------------------

    async def list_persons(self, limit: int = 50) -> list[Person]:
        return await self._client.find_all(
            CONTACT_PERSON, {}, FindOptions(limit=limit), decoder=Person.from_dict
        )
