"""
Google Tasks store - task lists and date-only tasks via the Tasks v1 API.

Blocking client calls run in a worker thread so the panel's event loop is
never stalled.
"""

import asyncio
import logging
from datetime import tzinfo
from typing import Any

from googleapiclient.errors import HttpError

from taskcal import config
from taskcal.errors import RemoteError
from taskcal.schedule.models import TaskItem, TaskList

from .errors import TRANSPORT_ERRORS, translate_http_error, translate_transport_error

logger = logging.getLogger(__name__)

PAGE_SIZE = 100


def build_service(api: str, version: str, scopes: list[str], credentials=None,
                  credentials_path: str | None = None, delegated_user: str | None = None):
    """
    Build a Google API client.

    Uses explicit credentials when given, otherwise a service account file
    with optional domain-wide delegation.
    """
    from google.oauth2 import service_account
    from googleapiclient.discovery import build

    if credentials is None:
        credentials = service_account.Credentials.from_service_account_file(
            credentials_path or config.SERVICE_ACCOUNT_FILE, scopes=scopes
        )
        if delegated_user:
            credentials = credentials.with_subject(delegated_user)
    return build(api, version, credentials=credentials, cache_discovery=False)


class GoogleTasksStore:
    """List, create, patch and delete Google Tasks."""

    def __init__(
        self,
        credentials=None,
        credentials_path: str | None = None,
        delegated_user: str | None = None,
        include_completed: bool = False,
        tz: tzinfo | None = None,
    ):
        """
        Args:
            credentials: Ready google-auth credentials. Takes precedence.
            credentials_path: Service account JSON. Defaults to config.
            delegated_user: User to impersonate. Defaults to config.
            include_completed: Also list completed and hidden tasks.
            tz: Zone due dates were written in. None = system local.
        """
        self.credentials = credentials
        self.credentials_path = credentials_path or config.SERVICE_ACCOUNT_FILE
        self.delegated_user = delegated_user or config.DELEGATED_USER
        self.include_completed = include_completed
        self.tz = tz
        self._service = None

    def _get_service(self):
        """Get Tasks API service, built once."""
        if self._service:
            return self._service

        try:
            self._service = build_service(
                "tasks",
                "v1",
                config.TASKS_SCOPES,
                credentials=self.credentials,
                credentials_path=self.credentials_path,
                delegated_user=self.delegated_user,
            )
            return self._service
        except (ValueError, OSError) as e:
            logger.error(f"Failed to get Tasks service: {e}")
            raise RemoteError(f"Failed to get Tasks service: {e}", reason="permission") from e

    def _execute(self, request, action: str) -> dict:
        try:
            return request.execute() or {}
        except HttpError as e:
            raise translate_http_error(e, action) from e
        except TRANSPORT_ERRORS as e:
            raise translate_transport_error(e, action) from e

    # =========================================================================
    # Blocking calls
    # =========================================================================

    def _list_task_lists(self) -> list[TaskList]:
        service = self._get_service()
        lists: list[TaskList] = []
        page_token = None
        while True:
            data = self._execute(
                service.tasklists().list(maxResults=PAGE_SIZE, pageToken=page_token),
                "List task lists",
            )
            for item in data.get("items", []):
                if item.get("id"):
                    lists.append(TaskList(id=item["id"], title=item.get("title", "")))
            page_token = data.get("nextPageToken")
            if not page_token:
                return lists

    def _list_tasks(self, list_id: str) -> list[TaskItem]:
        service = self._get_service()
        tasks: list[TaskItem] = []
        page_token = None
        while True:
            data = self._execute(
                service.tasks().list(
                    tasklist=list_id,
                    maxResults=PAGE_SIZE,
                    pageToken=page_token,
                    showCompleted=self.include_completed,
                    showHidden=self.include_completed,
                ),
                f"List tasks in {list_id}",
            )
            tasks.extend(TaskItem.from_api(t, list_id, self.tz) for t in data.get("items", []) if t.get("id"))
            page_token = data.get("nextPageToken")
            if not page_token:
                return tasks

    def _insert_task(self, list_id: str, fields: dict[str, Any]) -> TaskItem:
        service = self._get_service()
        data = self._execute(
            service.tasks().insert(tasklist=list_id, body=dict(fields)),
            f"Create task in {list_id}",
        )
        logger.info(f"Created task {data.get('id')} in list {list_id}")
        return TaskItem.from_api(data, list_id, self.tz)

    def _patch_task(self, list_id: str, task_id: str, fields: dict[str, Any]) -> TaskItem:
        service = self._get_service()
        data = self._execute(
            service.tasks().patch(tasklist=list_id, task=task_id, body=dict(fields)),
            f"Update task {task_id}",
        )
        logger.info(f"Updated task {task_id} in list {list_id}")
        return TaskItem.from_api(data, list_id, self.tz)

    def _delete_task(self, list_id: str, task_id: str) -> None:
        service = self._get_service()
        self._execute(
            service.tasks().delete(tasklist=list_id, task=task_id),
            f"Delete task {task_id}",
        )
        logger.info(f"Deleted task {task_id} from list {list_id}")

    # =========================================================================
    # Async API
    # =========================================================================

    async def list_task_lists(self) -> list[TaskList]:
        return await asyncio.to_thread(self._list_task_lists)

    async def list_tasks(self, list_id: str) -> list[TaskItem]:
        return await asyncio.to_thread(self._list_tasks, list_id)

    async def insert_task(self, list_id: str, fields: dict[str, Any]) -> TaskItem:
        return await asyncio.to_thread(self._insert_task, list_id, fields)

    async def patch_task(self, list_id: str, task_id: str, fields: dict[str, Any]) -> TaskItem:
        return await asyncio.to_thread(self._patch_task, list_id, task_id, fields)

    async def delete_task(self, list_id: str, task_id: str) -> None:
        await asyncio.to_thread(self._delete_task, list_id, task_id)
