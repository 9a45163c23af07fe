from typing import Optional

from sqlalchemy.orm import Session

from lounge_shared.db.models import User


class UserRepository:
    def __init__(self, session: Session):
        self.session = session

    def get_by_id(self, user_id: int) -> Optional[User]:
        return self.session.get(User, user_id)

    def create_user(self, user: User) -> User:
        self.session.add(user)
        self.session.flush()
        return user
