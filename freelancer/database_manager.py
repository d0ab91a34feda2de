import logging
from typing import List, Optional

from sqlalchemy import not_
from sqlalchemy.exc import IntegrityError

from .database import db, User, Project, DailyTask, DailyCompletion

logger = logging.getLogger(__name__)


class DatabaseManager:

    # users

    def create_user(self, email: str, password_hash: str) -> Optional[User]:
        """Create a new user, None if the email is taken"""
        try:
            user = User(email=email, password_hash=password_hash, is_two_fa_enabled=False)
            db.session.add(user)
            db.session.commit()
            return user
        except IntegrityError:
            db.session.rollback()
            logger.info("user insert rejected: email already registered")
            return None

    def get_user_by_email(self, email: str) -> Optional[User]:
        return User.query.filter_by(email=email).first()

    def get_user_by_id(self, user_id: int) -> Optional[User]:
        return db.session.get(User, user_id)

    def update_user(self, user: User) -> None:
        db.session.add(user)
        db.session.commit()

    # projects

    def create_project(self, user_id: int, name: str, color: str = None) -> Project:
        project = Project(user_id=user_id, name=name, color=color or '#ffffff')
        db.session.add(project)
        db.session.commit()
        return project

    def get_projects(self, user_id: int) -> List[Project]:
        return Project.query.filter_by(user_id=user_id).order_by(Project.id).all()

    def get_project(self, project_id: int) -> Optional[Project]:
        return db.session.get(Project, project_id)

    # daily tasks

    def create_daily_task(self, project_id: int, title: str, day: str) -> DailyTask:
        task = DailyTask(project_id=project_id, title=title)
        task.completions.append(DailyCompletion(date=day, done=False))
        db.session.add(task)
        db.session.commit()
        return task

    def get_daily_tasks(self, project_ids: List[int]) -> List[DailyTask]:
        if not project_ids:
            return []
        return (DailyTask.query
                .filter(DailyTask.project_id.in_(project_ids))
                .order_by(DailyTask.id)
                .all())

    def get_daily_task(self, task_id: int) -> Optional[DailyTask]:
        return db.session.get(DailyTask, task_id)

    def update_daily_task(self, task: DailyTask) -> None:
        db.session.add(task)
        db.session.commit()

    def delete_daily_task(self, task: DailyTask) -> None:
        db.session.delete(task)
        db.session.commit()

    def _find_completion(self, task_id: int, day: str) -> Optional[DailyCompletion]:
        return DailyCompletion.query.filter_by(task_id=task_id, date=day).first()

    def _flip_completion(self, task_id: int, day: str) -> int:
        """UPDATE ... SET done = NOT done; returns the number of rows touched"""
        return (DailyCompletion.query
                .filter_by(task_id=task_id, date=day)
                .update({DailyCompletion.done: not_(DailyCompletion.done)},
                        synchronize_session=False))

    def ensure_completion(self, task_id: int, day: str) -> bool:
        """Insert an undone completion for the day unless one exists.

        Returns True when a row was written. A concurrent insert of the same
        day loses on the unique constraint and is treated as already present.
        """
        if self._find_completion(task_id, day):
            return False
        try:
            db.session.add(DailyCompletion(task_id=task_id, date=day, done=False))
            db.session.commit()
            return True
        except IntegrityError:
            db.session.rollback()
            logger.info("completion for task %s on %s already present", task_id, day)
            return False

    def toggle_completion(self, task_id: int, day: str) -> None:
        """Flip the day's done flag, or insert it as done when missing"""
        if self._flip_completion(task_id, day):
            db.session.commit()
            return

        try:
            db.session.add(DailyCompletion(task_id=task_id, date=day, done=True))
            db.session.commit()
        except IntegrityError:
            # another request created the row in between; flip that one
            db.session.rollback()
            self._flip_completion(task_id, day)
            db.session.commit()
