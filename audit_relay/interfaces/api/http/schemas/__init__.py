from .audit import (
    AuditLogRes,
    AuditLogsRes,
    ExceptionLogRes,
    ExceptionLogsRes,
    to_audit_log_res,
    to_exception_log_res,
)
from .entities import InvoiceReq, InvoiceRes, UserReq, UserRes

__all__ = [
    "AuditLogRes",
    "AuditLogsRes",
    "ExceptionLogRes",
    "ExceptionLogsRes",
    "to_audit_log_res",
    "to_exception_log_res",
    "InvoiceReq",
    "InvoiceRes",
    "UserReq",
    "UserRes",
]
