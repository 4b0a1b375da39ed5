from datetime import datetime
from app import db

TASK_PRIORITIES = ('Critical', 'High', 'Medium', 'Low')
TASK_STATUSES = ('Pending', 'In Progress', 'Completed')

class Task(db.Model):
    __owner_column__ = 'user_id'

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    priority = db.Column(db.String(20), default='Low', nullable=False)
    status = db.Column(db.String(20), default='Pending', nullable=False, index=True)
    due_date = db.Column(db.DateTime, index=True)
    created_at = db.Column(db.DateTime, index=True, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)

    def __repr__(self):
        return f'<Task {self.title} ({self.status})>'

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'priority': self.priority,
            'status': self.status,
            'dueDate': self.due_date.isoformat() + 'Z' if self.due_date else None,
            'createdAt': self.created_at.isoformat() + 'Z' if self.created_at else None,
            'updatedAt': self.updated_at.isoformat() + 'Z' if self.updated_at else None,
            'userId': self.user_id
        }
