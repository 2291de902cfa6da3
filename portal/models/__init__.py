from .database import init_db, get_db, get_db_path
from .profile import Profile
from .form import FeedbackForm
from .submission import Submission

__all__ = ['init_db', 'get_db', 'get_db_path', 'Profile', 'FeedbackForm', 'Submission']
