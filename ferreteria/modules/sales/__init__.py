"""
Módulo de Ventas - Ferretería API

FLUJO DE UNA VENTA (una sola transacción):
1. validating: todos los productos existen y tienen stock suficiente
2. applying: descuento de stock con UPDATE condicional + número de venta
3. committing: inserción de la venta con sus líneas
4. committed: auditoría CREATE_SALE

Si cualquier paso falla la transacción se revierte completa (aborted / failed).

ELIMINACIÓN:
- Devuelve el stock de cada línea y borra la venta en la misma transacción
- Los productos que ya no existen se omiten con una advertencia

EDICIÓN:
- Solo cliente y método de pago; un único UPDATE

ROLES:
- admin: todo
- empleado: registrar y consultar ventas
"""
