from ferreteria.database.database import Base
from ferreteria.common.mixins import UUIDPrimaryKeyMixin, utcnow
from sqlalchemy import Column, String, DateTime, JSON, Uuid


class AuditLog(Base, UUIDPrimaryKeyMixin):
    """Registro de auditoría; solo se agregan filas, nunca se modifican."""
    __tablename__ = "audit_logs"

    timestamp = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    actor_user_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    actor_name = Column(String(120), nullable=False)
    actor_role = Column(String(30), nullable=False)
    action_type = Column(String(50), nullable=False, index=True)
    details = Column(JSON, nullable=False, default=dict)
