"""
Dashboard statistics. Every figure is an independent query scoped to the
caller and recomputed on each request.
"""

from datetime import datetime, timedelta
import logging
from app.models.event import Event
from app.models.task import Task
from app.utils.time_utils import js_weekday, local_day_bounds, to_user_local, user_today

logger = logging.getLogger(__name__)

URGENT_PRIORITIES = ('Critical', 'High')


class DashboardStatsService:

    @staticmethod
    def task_stats(user):
        total = Task.query.filter_by(user_id=user.id).count()
        completed = Task.query.filter_by(user_id=user.id, status='Completed').count()
        return {
            'total': total,
            'completed': completed,
            'pending': total - completed,
            'completionRate': (completed / total) * 100 if total > 0 else 0
        }

    @staticmethod
    def upcoming_events_count(user, now):
        return Event.query.filter(
            Event.creator_id == user.id,
            Event.status == 'Scheduled',
            Event.start_time >= now,
            Event.start_time <= now + timedelta(days=7)
        ).count()

    @staticmethod
    def urgent_tasks(user, limit=3):
        return Task.query.filter(
            Task.user_id == user.id,
            Task.status != 'Completed',
            Task.priority.in_(URGENT_PRIORITIES)
        ).order_by(Task.due_date.is_(None), Task.due_date, Task.created_at).limit(limit).all()

    @staticmethod
    def todays_tasks(user, now):
        day_start, day_end = local_day_bounds(user.timezone, user_today(user.timezone, now))
        return Task.query.filter(
            Task.user_id == user.id,
            Task.due_date >= day_start,
            Task.due_date < day_end
        ).order_by(Task.created_at.desc()).all()

    @staticmethod
    def weekly_progress(user, now):
        """Tasks completed in the last 7 days, counted per weekday (0 = Sunday)"""
        completed = Task.query.filter(
            Task.user_id == user.id,
            Task.status == 'Completed',
            Task.updated_at >= now - timedelta(days=7)
        ).all()

        buckets = [0] * 7
        for task in completed:
            buckets[js_weekday(to_user_local(task.updated_at, user.timezone))] += 1
        return buckets

    @staticmethod
    def upcoming_sessions(user, now, limit=3):
        events = Event.query.filter(
            Event.creator_id == user.id,
            Event.status == 'Scheduled',
            Event.start_time >= now
        ).order_by(Event.start_time).limit(limit).all()

        sessions = []
        for event in events:
            local_start = to_user_local(event.start_time, user.timezone)
            sessions.append({
                'id': event.id,
                'title': event.title,
                'date': local_start.strftime('%Y-%m-%d'),
                'time': local_start.strftime('%H:%M')
            })
        return sessions

    @staticmethod
    def upcoming_deadlines(user, now, limit=6):
        tasks = Task.query.filter(
            Task.user_id == user.id,
            Task.due_date >= now
        ).order_by(Task.due_date).limit(limit).all()
        return [{'id': t.id, 'title': t.title, 'due': t.to_dict()['dueDate']} for t in tasks]

    @staticmethod
    def overdue_tasks(user, now):
        return Task.query.filter(
            Task.user_id == user.id,
            Task.due_date < now,
            Task.status != 'Completed'
        ).order_by(Task.due_date).all()

    @staticmethod
    def build(user, now=None):
        """Assemble the full dashboard payload for one user"""
        now = now or datetime.utcnow()

        today = DashboardStatsService.todays_tasks(user, now)
        completed_today = len([t for t in today if t.status == 'Completed'])

        stats = {
            'taskStats': DashboardStatsService.task_stats(user),
            'upcomingEventsCount': DashboardStatsService.upcoming_events_count(user, now),
            'urgentTasks': [t.to_dict() for t in DashboardStatsService.urgent_tasks(user)],
            'tasks': [t.to_dict() for t in today],
            'dailyProgress': int(completed_today / len(today) * 100 + 0.5) if today else 0,
            'weeklyProgress': DashboardStatsService.weekly_progress(user, now),
            'upcomingSessions': DashboardStatsService.upcoming_sessions(user, now),
            'upcomingDeadlines': DashboardStatsService.upcoming_deadlines(user, now),
            'overdueTasks': [t.to_dict() for t in DashboardStatsService.overdue_tasks(user, now)]
        }
        logger.debug(f"Dashboard stats for user {user.id}: {stats['taskStats']}")
        return stats
