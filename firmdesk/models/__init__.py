"""Domain models for the firmdesk import and billing tools."""

from .client_record import ClientRecord
from .config_models import AppConfig, DatabaseConfig
from .entities import (
    Department,
    Employee,
    Engagement,
    EngagementType,
    Firm,
    RecurringEngagement,
    Task,
    TaxRate,
)
from .import_row import (
    CommitMode,
    CommitResult,
    Create,
    Duplicate,
    Ignore,
    ImportRow,
    RowAction,
    Update,
    ValidationResult,
)
from .error_record import ErrorRecord
from .invoice import InvoiceLineItem, InvoiceTotals
from .run_result import RunResult

__all__ = [
    # Configuration models
    "AppConfig",
    "DatabaseConfig",
    # Master data and work entities
    "ClientRecord",
    "Department",
    "Employee",
    "Engagement",
    "EngagementType",
    "Firm",
    "RecurringEngagement",
    "Task",
    "TaxRate",
    # Import models
    "CommitMode",
    "CommitResult",
    "Create",
    "Duplicate",
    "Ignore",
    "ImportRow",
    "RowAction",
    "Update",
    "ValidationResult",
    "RunResult",
    "ErrorRecord",
    # Billing
    "InvoiceLineItem",
    "InvoiceTotals",
]
