"""
Validadores y formatos de códigos de la ferretería
"""
import re
from typing import Optional


ITEM_CODE_PATTERN = re.compile(r'^(\d{2})-([A-Za-z0-9]{2})-(\d{5})$')
SHELF_CODE_PATTERN = re.compile(r'^[A-Za-z0-9]{2}$')
CATEGORY_CODE_PATTERN = re.compile(r'^\d{2}$')

# Prefijo de categoría -> nombre de categoría
CATEGORY_CODES = {
    '01': 'Herramientas',
    '02': 'Fontanería',
    '03': 'Electricidad',
    '04': 'Pinturas y Accesorios',
    '05': 'Tornillería y Fijaciones',
    '06': 'Materiales de Construcción',
    '07': 'Jardinería',
    '08': 'Equipo de Seguridad',
    '09': 'Automotriz',
    '10': 'Limpieza',
}


def get_category_name(prefix: str) -> Optional[str]:
    """Nombre de la categoría asociada al prefijo de dos dígitos."""
    return CATEGORY_CODES.get(prefix)


def validate_item_code(code: str) -> bool:
    """
    Valida el código de artículo CC-SS-NNNNN.
    - CC: categoría, 2 dígitos
    - SS: estante, 2 caracteres alfanuméricos
    - NNNNN: secuencia de 5 dígitos
    """
    return bool(ITEM_CODE_PATTERN.match(code or ''))


def format_item_code(category_prefix: str, shelf_prefix: str, sequence: int) -> str:
    return f"{category_prefix}-{shelf_prefix.upper()}-{sequence:05d}"


def parse_item_code_sequence(code: str) -> int:
    """Secuencia numérica del código, 0 si el código no tiene el formato esperado."""
    match = ITEM_CODE_PATTERN.match(code or '')
    if not match:
        return 0
    return int(match.group(3))
