from ferreteria.database.database import Base
from ferreteria.common.mixins import UUIDPrimaryKeyMixin, TimestampMixin, utcnow
from sqlalchemy import Column, String, DateTime, Text


class Customer(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Cliente registrado. Las ventas guardan una copia de su nombre."""
    __tablename__ = "customers"

    name = Column(String(200), nullable=False, index=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    address = Column(Text, nullable=True)
    ruc = Column(String(20), nullable=True, unique=True)
    registration_date = Column(DateTime(timezone=True), nullable=False, default=utcnow)
