"""
Identity of the signed-in user.

A PortalSession is built once per request from the cookie session, resolved
against the profiles table, and handed to the code that needs to know who is
acting. Profiles are either StudentProfile or TeacherProfile.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Mapping, Optional, Union

from config import ROLE_STUDENT, ROLE_TEACHER

logger = logging.getLogger(__name__)

SESSION_USER_KEY = 'user_id'


@dataclass(frozen=True)
class StudentProfile:
    id: str
    email: str
    full_name: str
    department: str
    student_id: Optional[str] = None
    role: str = ROLE_STUDENT


@dataclass(frozen=True)
class TeacherProfile:
    id: str
    email: str
    full_name: str
    department: str
    position: Optional[str] = None
    role: str = ROLE_TEACHER


UserProfile = Union[StudentProfile, TeacherProfile]


def profile_from_row(row: Mapping) -> UserProfile:
    """Build the role-specific profile from a profiles row."""
    role = row['user_role']
    if role == ROLE_STUDENT:
        return StudentProfile(
            id=row['id'],
            email=row['email'],
            full_name=row['full_name'],
            department=row['department'],
            student_id=row.get('student_id'),
        )
    if role == ROLE_TEACHER:
        return TeacherProfile(
            id=row['id'],
            email=row['email'],
            full_name=row['full_name'],
            department=row['department'],
            position=row.get('position'),
        )
    raise ValueError(f"Unknown user role: {role!r}")


class PortalSession:
    """Current user id, resolved profile and loading flag."""

    def __init__(self, store: dict, profile_loader: Callable[[str], Optional[Mapping]]):
        self._store = store
        self._load_profile = profile_loader
        self.profile: Optional[UserProfile] = None
        self.loading = False

    @property
    def user_id(self) -> Optional[str]:
        return self._store.get(SESSION_USER_KEY)

    @property
    def is_authenticated(self) -> bool:
        return self.profile is not None

    def refresh(self) -> Optional[UserProfile]:
        """Resolve the profile for the stored user id.

        A user id whose profile no longer exists is signed out.
        """
        self.profile = None
        user_id = self.user_id
        if not user_id:
            return None

        self.loading = True
        try:
            row = self._load_profile(user_id)
        finally:
            self.loading = False

        if row is None:
            logger.warning(f"No profile for session user {user_id}, signing out")
            self.sign_out()
            return None
        self.profile = profile_from_row(row)
        return self.profile

    def sign_in(self, user_id: str) -> Optional[UserProfile]:
        self._store.clear()
        self._store[SESSION_USER_KEY] = user_id
        return self.refresh()

    def sign_out(self) -> None:
        self._store.clear()
        self.profile = None
        self.loading = False
