from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import Boolean, DateTime, Integer, String, UniqueConstraint
from datetime import datetime

db = SQLAlchemy()


class User(db.Model):
    __tablename__ = 'users'

    id = db.Column(Integer, primary_key=True)
    # exact match, stored as submitted
    email = db.Column(String(120), unique=True, nullable=False, index=True)
    password_hash = db.Column(String(128), nullable=False)
    # set on setup, only required at login once is_two_fa_enabled flips
    two_fa_secret = db.Column(String(32), nullable=True)
    is_two_fa_enabled = db.Column(Boolean, nullable=False, default=False)
    created_at = db.Column(DateTime, default=datetime.utcnow)

    projects = db.relationship('Project', backref='user', lazy=True, cascade='all, delete-orphan')

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'isTwoFAEnabled': bool(self.is_two_fa_enabled),
        }


class Project(db.Model):
    __tablename__ = 'projects'

    id = db.Column(Integer, primary_key=True)
    user_id = db.Column(Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    name = db.Column(String(100), nullable=False)
    color = db.Column(String(16), nullable=False, default='#ffffff')
    created_at = db.Column(DateTime, default=datetime.utcnow)

    daily_tasks = db.relationship('DailyTask', backref='project', lazy=True, cascade='all, delete-orphan')

    def to_dict(self):
        return {'id': self.id, 'name': self.name, 'color': self.color}


class DailyTask(db.Model):
    __tablename__ = 'daily_tasks'

    id = db.Column(Integer, primary_key=True)
    project_id = db.Column(Integer, db.ForeignKey('projects.id'), nullable=False, index=True)
    title = db.Column(String(200), nullable=False)

    completions = db.relationship(
        'DailyCompletion',
        backref='task',
        lazy=True,
        cascade='all, delete-orphan',
        order_by='DailyCompletion.date',
    )

    def __repr__(self):
        return f'<DailyTask {self.title} in project {self.project_id}>'


class DailyCompletion(db.Model):
    __tablename__ = 'daily_completions'
    # one entry per task per calendar day; inserts race on this constraint
    __table_args__ = (UniqueConstraint('task_id', 'date', name='uq_completion_task_date'),)

    id = db.Column(Integer, primary_key=True)
    task_id = db.Column(Integer, db.ForeignKey('daily_tasks.id'), nullable=False, index=True)
    date = db.Column(String(10), nullable=False)  # YYYY-MM-DD
    done = db.Column(Boolean, nullable=False, default=False)
