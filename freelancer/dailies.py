"""Daily task completion ledger.

Completions are day-bucketed ``{date, done}`` records, at most one per date
per task. The functions at the top of this module operate on plain
``Completion`` lists; ``DailyTaskManager`` applies the same rules to
persisted tasks and enforces project ownership.
"""
import logging
from datetime import date
from typing import Iterable, List, Optional

from .database import DailyTask
from .database_manager import DatabaseManager
from .errors import ProjectNotFound, TaskNotFound
from .models import Completion, DailyTaskView, day_string, days_before, parse_day

logger = logging.getLogger(__name__)

HISTORY_DAYS = 7


def _today(today: Optional[date]) -> date:
    # process-local calendar day
    return today or date.today()


def ensure_today(completions: List[Completion], today: Optional[date] = None) -> List[Completion]:
    """Append an undone entry for today unless one exists. Idempotent.

    Reference rule for in-memory completion lists. Persisted tasks get the
    same behaviour from ``DatabaseManager.ensure_completion``, which does the
    insert-if-absent in the database instead of rewriting the list.
    """
    key = day_string(_today(today))
    if any(c.date == key for c in completions):
        return list(completions)
    return list(completions) + [Completion(date=key, done=False)]


def toggle_today(completions: List[Completion], today: Optional[date] = None) -> List[Completion]:
    """Flip today's entry, or insert it as done when missing.

    Reference rule for in-memory completion lists; the persisted counterpart
    is ``DatabaseManager.toggle_completion``.
    """
    key = day_string(_today(today))
    result = []
    found = False
    for c in completions:
        if c.date == key:
            result.append(Completion(date=c.date, done=not c.done))
            found = True
        else:
            result.append(Completion(date=c.date, done=c.done))
    if not found:
        result.append(Completion(date=key, done=True))
    return result


def compute_streak(completions: Iterable[Completion], today: Optional[date] = None) -> int:
    """Consecutive done days counting back from today; stops at the first gap."""
    done_dates = sorted({c.date for c in completions if c.done and c.date}, reverse=True)

    anchor = _today(today)
    streak = 0
    for date_str in done_dates:
        expected = days_before(anchor, streak)
        if parse_day(date_str) == expected:
            streak += 1
        else:
            break
    return streak


def compute_history(completions: Iterable[Completion], today: Optional[date] = None) -> List[bool]:
    """Seven booleans, oldest (today - 6) first, true where a done entry exists."""
    done_dates = {c.date for c in completions if c.done}
    anchor = _today(today)
    return [
        day_string(days_before(anchor, offset)) in done_dates
        for offset in range(HISTORY_DAYS - 1, -1, -1)
    ]


def completions_of(task: DailyTask) -> List[Completion]:
    return [Completion(date=row.date, done=bool(row.done)) for row in task.completions]


def task_view(task: DailyTask, today: Optional[date] = None) -> DailyTaskView:
    completions = completions_of(task)
    return DailyTaskView(
        id=task.id,
        projectId=task.project_id,
        title=task.title,
        completions=[{'date': c.date, 'done': c.done} for c in completions],
        streak=compute_streak(completions, today),
        history=compute_history(completions, today),
    )


class DailyTaskManager:
    def __init__(self, db_manager: DatabaseManager = None):
        self.db_manager = db_manager or DatabaseManager()

    def _owned_project(self, user_id: int, project_id: int):
        project = self.db_manager.get_project(project_id)
        if not project or project.user_id != user_id:
            raise ProjectNotFound()
        return project

    def _owned_task(self, user_id: int, task_id: int) -> DailyTask:
        task = self.db_manager.get_daily_task(task_id)
        if not task or task.project.user_id != user_id:
            raise TaskNotFound()
        return task

    def add_task(self, user_id: int, project_id: int, title: str, today: Optional[date] = None) -> DailyTask:
        """Create a task with a single undone completion for today"""
        self._owned_project(user_id, project_id)
        task = self.db_manager.create_daily_task(project_id, title, day_string(_today(today)))
        logger.info("daily task %s created in project %s", task.id, project_id)
        return task

    def list_with_today_ensured(self, user_id: int, project_id: int,
                                today: Optional[date] = None) -> List[DailyTask]:
        """List a project's tasks, first writing today's entry where it is missing.

        This is a read with a documented write: every returned task carries a
        completion dated today.
        """
        self._owned_project(user_id, project_id)
        key = day_string(_today(today))
        tasks = self.db_manager.get_daily_tasks([project_id])
        for task in tasks:
            self.db_manager.ensure_completion(task.id, key)
        return self.db_manager.get_daily_tasks([project_id])

    def list_all(self, user_id: int) -> List[DailyTask]:
        project_ids = [p.id for p in self.db_manager.get_projects(user_id)]
        return self.db_manager.get_daily_tasks(project_ids)

    def toggle(self, user_id: int, task_id: int, today: Optional[date] = None) -> DailyTask:
        task = self._owned_task(user_id, task_id)
        self.db_manager.toggle_completion(task.id, day_string(_today(today)))
        return self.db_manager.get_daily_task(task_id)

    def rename(self, user_id: int, task_id: int, title: str) -> DailyTask:
        task = self._owned_task(user_id, task_id)
        task.title = title
        self.db_manager.update_daily_task(task)
        return task

    def delete(self, user_id: int, task_id: int) -> None:
        task = self._owned_task(user_id, task_id)
        self.db_manager.delete_daily_task(task)
        logger.info("daily task %s deleted", task_id)
