from ferreteria.database.database import Base
from ferreteria.common.mixins import UUIDPrimaryKeyMixin, TimestampMixin
from sqlalchemy import Column, String, JSON


class Supplier(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Proveedor de mercadería. Los artículos guardan su nombre como texto."""
    __tablename__ = "suppliers"

    name = Column(String(200), nullable=False, index=True)
    phone = Column(String(50), nullable=True)
    email = Column(String(255), nullable=True)
    contact_name = Column(String(200), nullable=True)
    supplied_products = Column(JSON, nullable=False, default=list)  # ["Tornillos", "Clavos"]
