# Models package
from .user import User, Contact
from .task import Task
from .event import Event, EventParticipant
from .study_session import StudySession
