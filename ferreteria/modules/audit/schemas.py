from enum import Enum


class AuditActionType(str, Enum):
    CREATE_SALE = "CREATE_SALE"
    DELETE_SALE = "DELETE_SALE"
    UPDATE_SALE_DETAILS = "UPDATE_SALE_DETAILS"
