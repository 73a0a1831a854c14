from typing import Any, Dict, Optional
from uuid import UUID
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ferreteria.modules.audit.models import AuditLog
from ferreteria.modules.audit.schemas import AuditActionType
from ferreteria.modules.auth.service import get_user_by_id
from ferreteria.modules.auth.schemas import UNKNOWN_ROLE, UNKNOWN_USER_NAME

logger = logging.getLogger(__name__)


class AuditService:
    """Writes audit entries in their own transaction, after the audited change committed."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def record(
        self,
        actor_user_id: UUID,
        action_type: AuditActionType,
        details: Dict[str, Any]
    ) -> Optional[AuditLog]:
        """
        Append an audit entry. The actor's name and role are read from the
        users table. A failure here is logged and does not propagate: the
        audited operation has already been committed.
        """
        session: Session = self.session_factory()
        try:
            with session.begin():
                actor = get_user_by_id(session, actor_user_id)
                entry = AuditLog(
                    actor_user_id=actor_user_id,
                    actor_name=actor.nombre if actor else UNKNOWN_USER_NAME,
                    actor_role=actor.rol if actor else UNKNOWN_ROLE,
                    action_type=action_type.value,
                    details=details,
                )
                session.add(entry)
            logger.info(f"Audit entry added for action {action_type.value} by {entry.actor_name}")
            return entry
        except SQLAlchemyError:
            logger.error(
                f"Failed to add audit entry for action {action_type.value} by user {actor_user_id}",
                exc_info=True
            )
            return None
        finally:
            session.close()
