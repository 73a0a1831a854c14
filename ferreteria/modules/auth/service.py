from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from ferreteria.modules.auth.models import User


def get_user_by_id(db: Session, user_id: UUID) -> Optional[User]:
    """Usuario por ID, o None si no existe."""
    return db.get(User, user_id)
