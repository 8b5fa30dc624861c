from typing import Optional
from datetime import datetime, timezone
from arango.database import StandardDatabase

from aily.models.user import UserCreate, User


class UserCRUD:
    """User database operations."""

    def __init__(self, db: StandardDatabase):
        self.db = db
        self.collection = db.collection('users')

    def create_user(self, user: UserCreate) -> User:
        """Create a new user account."""
        now = datetime.now(timezone.utc)
        user_data = {
            "email": user.email,
            "name": user.name,
            "created_at": now.isoformat(),
        }

        result = self.collection.insert(user_data, return_new=True)
        return User(**result['new'])

    def get_user_by_email(self, email: str) -> Optional[User]:
        """Retrieve user by email address."""
        cursor = self.db.aql.execute(
            "FOR user IN users FILTER user.email == @email LIMIT 1 RETURN user",
            bind_vars={'email': email}
        )

        users = list(cursor)
        if users:
            return User(**users[0])
        return None

    def get_user_by_key(self, key: str) -> Optional[User]:
        """Retrieve user by document key."""
        user_data = self.collection.get(key)
        if user_data:
            return User(**user_data)
        return None
