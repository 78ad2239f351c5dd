from models.base import Base
from models.user import User
from models.user_profile import UserProfile
from models.github_connection import GitHubConnection
from models.job import Job
from models.event import Event

__all__ = [
    "Base",
    "User",
    "UserProfile",
    "GitHubConnection",
    "Job",
    "Event",
]
