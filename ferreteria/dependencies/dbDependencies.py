from fastapi import Depends
from sqlalchemy.orm import Session, sessionmaker
from typing import Annotated
from ferreteria.database.database import get_db, get_session_factory

# Request-scoped session for reads and single-document updates
db_dependency = Annotated[Session, Depends(get_db)]

# Session factory for sale transactions (one session per attempt)
session_factory_dependency = Annotated[sessionmaker, Depends(get_session_factory)]
