from datetime import datetime
from app import db

class StudySession(db.Model):
    """Study time logged by a user on a given local day"""
    __tablename__ = 'study_session'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    date = db.Column(db.String(10), nullable=False, index=True)  # "YYYY-MM-DD"
    minutes = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f'<StudySession user={self.user_id} {self.date} {self.minutes}m>'

    @staticmethod
    def minutes_by_date(user_id, dates):
        """Total minutes per date key for the given user"""
        rows = db.session.query(
            StudySession.date, db.func.sum(StudySession.minutes)
        ).filter(
            StudySession.user_id == user_id,
            StudySession.date.in_(dates)
        ).group_by(StudySession.date).all()
        return {date: int(total or 0) for date, total in rows}
