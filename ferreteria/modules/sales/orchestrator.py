"""
Orquestador de transacciones de venta.

Ejecuta una unidad de trabajo (crear o eliminar una venta) como una sola
transacción del almacén:

    idle -> validating -> applying -> committing -> committed
                 \\            \\            \\
                  aborted      aborted      failed

Cada intento usa una sesión nueva de la fábrica inyectada. Cualquier error
dentro de ``session.begin()`` revierte la transacción completa, así que una
venta nunca queda a medias.
"""
from enum import Enum
from typing import Callable, List, Optional, TypeVar
import logging
import time

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ferreteria.core.config import settings
from ferreteria.database.errors import is_retryable_error, is_timeout_error
from ferreteria.modules.sales.exceptions import (
    SaleError, ConcurrencyError, SaleNumberCollisionError, SaleTimeoutError, PersistenceError
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TransactionState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    APPLYING = "applying"
    COMMITTING = "committing"
    COMMITTED = "committed"
    ABORTED = "aborted"
    FAILED = "failed"


TERMINAL_STATES = {TransactionState.COMMITTED, TransactionState.ABORTED, TransactionState.FAILED}


class SaleTransaction:
    """Un intento de transacción: sesión, estado y plazo máximo."""

    def __init__(
        self,
        session: Session,
        operation: str,
        deadline: float,
        timeout_seconds: float,
        clock: Callable[[], float],
        attempt: int = 1
    ):
        self.session = session
        self.operation = operation
        self.deadline = deadline
        self.timeout_seconds = timeout_seconds
        self.clock = clock
        self.attempt = attempt
        self.state = TransactionState.IDLE
        self.history: List[TransactionState] = [TransactionState.IDLE]
        self.error: Optional[SaleError] = None

    def transition(self, new_state: TransactionState) -> None:
        """Pasar a la siguiente fase, comprobando antes el plazo."""
        if new_state not in TERMINAL_STATES:
            self.check_deadline()
        logger.debug(f"{self.operation} attempt {self.attempt}: {self.state.value} -> {new_state.value}")
        self.state = new_state
        self.history.append(new_state)

    def check_deadline(self) -> None:
        if self.clock() > self.deadline:
            raise SaleTimeoutError(self.timeout_seconds)

    def finish(self, error: SaleError) -> None:
        self.error = error
        if isinstance(error, PersistenceError):
            self.transition(TransactionState.FAILED)
        else:
            self.transition(TransactionState.ABORTED)


class TransactionOrchestrator:

    def __init__(
        self,
        session_factory: sessionmaker,
        timeout_seconds: Optional[float] = None,
        max_retries: Optional[int] = None,
        isolation_level: Optional[str] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        self.session_factory = session_factory
        self.timeout_seconds = (
            timeout_seconds if timeout_seconds is not None else settings.SALE_TRANSACTION_TIMEOUT_SECONDS
        )
        self.max_retries = max_retries if max_retries is not None else settings.SALE_TRANSACTION_MAX_RETRIES
        self.isolation_level = (
            isolation_level if isolation_level is not None else settings.SALE_TRANSACTION_ISOLATION_LEVEL
        )
        self.clock = clock
        self.last_transaction: Optional[SaleTransaction] = None

    def run(self, operation: str, unit: Callable[[SaleTransaction], T]) -> T:
        """
        Ejecutar ``unit`` dentro de una transacción y confirmarla.

        ``unit`` recibe la transacción, marca las fases applying/committing y
        devuelve el resultado. Solo los conflictos transitorios que el almacén
        marca como reintentables se reintentan, hasta ``max_retries`` veces y
        mientras quede plazo. Los errores de negocio nunca se reintentan.
        """
        deadline = self.clock() + self.timeout_seconds
        attempt = 0

        while True:
            attempt += 1
            session = self.session_factory()
            tx = SaleTransaction(session, operation, deadline, self.timeout_seconds, self.clock, attempt)
            self.last_transaction = tx
            try:
                result = self._run_attempt(tx, unit)
                tx.transition(TransactionState.COMMITTED)
                logger.info(f"{operation} committed (attempt {attempt})")
                return result
            except SaleError as e:
                tx.finish(e)
                logger.info(f"{operation} {tx.state.value}: {e.error_code} - {e.message}")
                raise
            except SQLAlchemyError as e:
                if is_retryable_error(e) and attempt <= self.max_retries and self.clock() < deadline:
                    logger.warning(
                        f"{operation} attempt {attempt} hit a transient store conflict, retrying: {e.orig}"
                    )
                    continue
                error = self._translate(tx, e)
                tx.finish(error)
                raise error from e
            finally:
                session.close()

    def _run_attempt(self, tx: SaleTransaction, unit: Callable[[SaleTransaction], T]) -> T:
        with tx.session.begin():
            self._configure_transaction(tx.session)
            tx.transition(TransactionState.VALIDATING)
            result = unit(tx)
            # El commit ocurre al salir del bloque
            tx.check_deadline()
        return result

    def _configure_transaction(self, session: Session) -> None:
        """En PostgreSQL: nivel de aislamiento y statement_timeout para esta transacción."""
        if session.get_bind().dialect.name != "postgresql":
            return
        options = {"isolation_level": self.isolation_level} if self.isolation_level else {}
        connection = session.connection(execution_options=options)
        timeout_ms = max(int(self.timeout_seconds * 1000), 1)
        connection.execute(text(f"SET LOCAL statement_timeout = {timeout_ms}"))

    def _translate(self, tx: SaleTransaction, error: SQLAlchemyError) -> SaleError:
        """Convertir un error del almacén en un error del dominio de ventas."""
        if is_timeout_error(error):
            logger.warning(f"{tx.operation} cancelled by statement timeout")
            return SaleTimeoutError(self.timeout_seconds)
        if is_retryable_error(error):
            logger.warning(f"{tx.operation} gave up after {tx.attempt} attempts on transient conflicts")
            return ConcurrencyError(
                "La operación entró en conflicto con otra transacción simultánea. Por favor, intente nuevamente."
            )
        if isinstance(error, IntegrityError) and "sale_number" in str(error.orig):
            logger.warning(f"{tx.operation} lost a sale number race: {error.orig}")
            return SaleNumberCollisionError()
        logger.error(f"{tx.operation} failed in state {tx.state.value}", exc_info=error)
        return PersistenceError()
