"""
Errores del motor de ventas.

Cada error lleva el código HTTP y el código de error con que se presenta al
cliente; el manejador registrado en ferreteria/main.py los traduce a JSON.
"""
from decimal import Decimal
from typing import Any, Dict, Optional
from uuid import UUID


class SaleError(Exception):
    """Base de todos los errores de la transacción de venta."""
    status_code = 500
    error_code = "sale_error"
    retryable = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"detail": self.message, "code": self.error_code, "retryable": self.retryable}


class SaleValidationError(SaleError):
    """Entrada mal formada: lista vacía, cantidad no positiva, precio negativo, cliente inexistente."""
    status_code = 400
    error_code = "validation_error"


class StockError(SaleError):
    """Condición de stock corregible por el usuario, detectada antes de modificar nada."""
    status_code = 409
    error_code = "stock_error"


class ProductNotFoundError(StockError):
    error_code = "product_not_found"

    def __init__(self, product_id: UUID, product_name: str):
        super().__init__(f"Producto \"{product_name}\" (ID: {product_id}) no encontrado.")
        self.product_id = product_id
        self.product_name = product_name

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update(product_id=str(self.product_id), product_name=self.product_name)
        return data


class InsufficientStockError(StockError):
    error_code = "insufficient_stock"

    def __init__(self, product_name: str, available: Decimal, requested: Decimal, unit_name: Optional[str] = None):
        unit = f" (en {unit_name})" if unit_name else ""
        super().__init__(
            f"Stock insuficiente para \"{product_name}\"{unit}. "
            f"Disponible: {available}, Solicitado: {requested}."
        )
        self.product_name = product_name
        self.available = available
        self.requested = requested

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update(
            product_name=self.product_name,
            available=str(self.available),
            requested=str(self.requested)
        )
        return data


class ConcurrencyError(SaleError):
    """Otra transacción ganó la carrera; el cliente puede reintentar."""
    status_code = 409
    error_code = "concurrency_conflict"
    retryable = True


class ConcurrentStockConflictError(ConcurrencyError):

    def __init__(self, product_id: UUID, product_name: str):
        super().__init__(
            f"El stock de \"{product_name}\" cambió mientras se procesaba la venta. "
            f"Por favor, intente nuevamente."
        )
        self.product_id = product_id
        self.product_name = product_name


class SaleNumberCollisionError(ConcurrencyError):

    def __init__(self, sale_number: Optional[str] = None):
        number = f" {sale_number}" if sale_number else ""
        super().__init__(
            f"El número de venta{number} fue asignado a otra venta simultánea. "
            f"Por favor, intente nuevamente."
        )
        self.sale_number = sale_number


class SaleTimeoutError(SaleError):
    """La transacción superó su tiempo máximo; no quedó ningún cambio aplicado."""
    status_code = 503
    error_code = "transaction_timeout"
    retryable = True

    def __init__(self, timeout_seconds: float):
        super().__init__(
            f"La operación excedió el tiempo máximo de {timeout_seconds:g} segundos. "
            f"Por favor, intente nuevamente."
        )
        self.timeout_seconds = timeout_seconds


class PersistenceError(SaleError):
    """Falla del almacén ajena a las reglas de negocio. El detalle solo va al log."""
    status_code = 500
    error_code = "persistence_error"

    def __init__(self, message: str = "No se pudo guardar la operación en la base de datos."):
        super().__init__(message)


class SaleNotFoundError(SaleError):
    status_code = 404
    error_code = "sale_not_found"

    def __init__(self, sale_id: UUID):
        super().__init__("Venta no encontrada.")
        self.sale_id = sale_id
