from sqlalchemy import Column, String
from ferreteria.database.database import Base
from ferreteria.common.mixins import UUIDPrimaryKeyMixin, TimestampMixin


class User(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    __tablename__ = "users"

    nombre = Column(String(120), nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False)
    rol = Column(String(30), nullable=False, default="empleado")  # admin, empleado, inventory_manager
    password = Column(String, nullable=True)
