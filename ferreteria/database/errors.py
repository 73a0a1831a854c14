"""
Clasificación de errores del almacén transaccional.

Traduce las excepciones del driver (psycopg2 / sqlite3) envueltas por
SQLAlchemy en señales que el orquestador de ventas entiende: error
reintentable (conflicto transitorio) o cancelación por timeout.
"""
from sqlalchemy.exc import DBAPIError, OperationalError

# serialization_failure, deadlock_detected
RETRYABLE_PGCODES = {"40001", "40P01"}
# query_canceled (statement_timeout)
TIMEOUT_PGCODES = {"57014"}


def _pgcode(exc: DBAPIError):
    return getattr(exc.orig, "pgcode", None)


def is_retryable_error(exc: BaseException) -> bool:
    """True si el almacén señala un conflicto transitorio que se puede reintentar."""
    if not isinstance(exc, DBAPIError):
        return False
    if _pgcode(exc) in RETRYABLE_PGCODES:
        return True
    if isinstance(exc, OperationalError) and "database is locked" in str(exc.orig).lower():
        return True
    return False


def is_timeout_error(exc: BaseException) -> bool:
    """True si el almacén canceló la sentencia por exceder el tiempo límite."""
    if not isinstance(exc, DBAPIError):
        return False
    return _pgcode(exc) in TIMEOUT_PGCODES
