from __future__ import annotations

from dataclasses import dataclass
from typing import Any

"""Master-data and work entities referenced by the import pipelines.

Each entity converts from/to its camelCase document form. Only the fields the
import and billing services read or write are modelled; unknown document keys
are ignored.
"""

__all__ = [
    "Employee",
    "Firm",
    "Department",
    "EngagementType",
    "Engagement",
    "Task",
    "RecurringEngagement",
    "TaxRate",
]

DEFAULT_LEAVE_ALLOWANCE = 18
DEFAULT_AVATAR = "https://placehold.co/40x40.png"


@dataclass(frozen=True)
class Employee:
    id: str
    name: str
    email: str
    roles: tuple[str, ...] = ()
    designation: str = ""
    avatar: str = DEFAULT_AVATAR
    manager_id: str | None = None
    leave_allowance: int = DEFAULT_LEAVE_ALLOWANCE
    leaves_taken: int = 0

    def has_role(self, role: str) -> bool:
        wanted = role.strip().lower()
        return any(r.strip().lower() == wanted for r in self.roles)

    @staticmethod
    def from_document(doc: dict[str, Any]) -> Employee:
        role = doc.get("role") or []
        if isinstance(role, str):
            role = [role]
        return Employee(
            id=str(doc["id"]),
            name=str(doc.get("name") or ""),
            email=str(doc.get("email") or ""),
            roles=tuple(role),
            designation=doc.get("designation") or "",
            avatar=doc.get("avatar") or DEFAULT_AVATAR,
            manager_id=doc.get("managerId"),
            leave_allowance=int(doc.get("leaveAllowance") or DEFAULT_LEAVE_ALLOWANCE),
            leaves_taken=int(doc.get("leavesTaken") or 0),
        )

    def to_document(self) -> dict[str, Any]:
        doc: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "designation": self.designation,
            "role": list(self.roles),
            "avatar": self.avatar,
            "leaveAllowance": self.leave_allowance,
            "leavesTaken": self.leaves_taken,
        }
        if self.manager_id:
            doc["managerId"] = self.manager_id
        return doc


@dataclass(frozen=True)
class Firm:
    """A billing entity of the practice. `gstn` is empty when not GST registered."""
    id: str
    name: str
    gstn: str = ""
    state: str = ""

    @property
    def has_gst(self) -> bool:
        return bool(self.gstn and self.gstn.strip())

    @staticmethod
    def from_document(doc: dict[str, Any]) -> Firm:
        return Firm(
            id=str(doc["id"]),
            name=str(doc.get("name") or ""),
            gstn=doc.get("gstn") or "",
            state=doc.get("state") or "",
        )


@dataclass(frozen=True)
class Department:
    id: str
    name: str
    order: int = 0

    @staticmethod
    def from_document(doc: dict[str, Any]) -> Department:
        return Department(id=str(doc["id"]), name=str(doc.get("name") or ""), order=int(doc.get("order") or 0))


@dataclass(frozen=True)
class EngagementType:
    """Template for engagements; `sub_task_titles` seed the task checklist."""
    id: str
    name: str
    description: str = ""
    sub_task_titles: tuple[str, ...] = ()
    applicable_categories: tuple[str, ...] = ()
    recurrence: str | None = None

    @property
    def is_recurring(self) -> bool:
        return bool(self.recurrence)

    @staticmethod
    def from_document(doc: dict[str, Any]) -> EngagementType:
        return EngagementType(
            id=str(doc["id"]),
            name=str(doc.get("name") or ""),
            description=doc.get("description") or "",
            sub_task_titles=tuple(doc.get("subTaskTitles") or ()),
            applicable_categories=tuple(doc.get("applicableCategories") or ()),
            recurrence=doc.get("recurrence") or None,
        )


@dataclass(frozen=True)
class Engagement:
    id: str
    client_id: str
    type: str
    assigned_to: tuple[str, ...] = ()
    reported_to: str = ""
    remarks: str = ""
    due_date: str = ""
    status: str = "Pending"
    fees: float | None = None
    bill_status: str | None = None

    @staticmethod
    def from_document(doc: dict[str, Any]) -> Engagement:
        assigned = doc.get("assignedTo") or []
        if isinstance(assigned, str):
            assigned = [assigned]
        return Engagement(
            id=str(doc["id"]),
            client_id=str(doc.get("clientId") or ""),
            type=str(doc.get("type") or ""),
            assigned_to=tuple(assigned),
            reported_to=doc.get("reportedTo") or "",
            remarks=doc.get("remarks") or "",
            due_date=doc.get("dueDate") or "",
            status=doc.get("status") or "Pending",
            fees=doc.get("fees"),
            bill_status=doc.get("billStatus"),
        )

    def to_document(self) -> dict[str, Any]:
        doc: dict[str, Any] = {
            "id": self.id,
            "clientId": self.client_id,
            "type": self.type,
            "assignedTo": list(self.assigned_to),
            "reportedTo": self.reported_to,
            "remarks": self.remarks,
            "dueDate": self.due_date,
            "status": self.status,
        }
        if self.fees is not None:
            doc["fees"] = self.fees
        if self.bill_status is not None:
            doc["billStatus"] = self.bill_status
        return doc


@dataclass(frozen=True)
class Task:
    id: str
    engagement_id: str
    title: str
    order: int
    status: str = "Pending"
    assigned_to: str = ""

    def to_document(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "engagementId": self.engagement_id,
            "title": self.title,
            "status": self.status,
            "order": self.order,
            "assignedTo": self.assigned_to,
        }


@dataclass(frozen=True)
class RecurringEngagement:
    id: str
    client_id: str
    engagement_type_id: str
    fees: float
    assigned_to: tuple[str, ...]
    reported_to: str
    due_date_day: int
    due_date_month: int | None = None
    is_active: bool = True

    @staticmethod
    def from_document(doc: dict[str, Any]) -> RecurringEngagement:
        return RecurringEngagement(
            id=str(doc["id"]),
            client_id=str(doc.get("clientId") or ""),
            engagement_type_id=str(doc.get("engagementTypeId") or ""),
            fees=float(doc.get("fees") or 0),
            assigned_to=tuple(doc.get("assignedTo") or ()),
            reported_to=doc.get("reportedTo") or "",
            due_date_day=int(doc.get("dueDateDay") or 1),
            due_date_month=doc.get("dueDateMonth"),
            is_active=bool(doc.get("isActive", True)),
        )

    def to_document(self) -> dict[str, Any]:
        doc: dict[str, Any] = {
            "id": self.id,
            "clientId": self.client_id,
            "engagementTypeId": self.engagement_type_id,
            "fees": self.fees,
            "isActive": self.is_active,
            "assignedTo": list(self.assigned_to),
            "reportedTo": self.reported_to,
            "dueDateDay": self.due_date_day,
        }
        if self.due_date_month is not None:
            doc["dueDateMonth"] = self.due_date_month
        return doc


@dataclass(frozen=True)
class TaxRate:
    """GST rate master; `rate` is a percentage (18 means 18%)."""
    id: str
    name: str
    rate: float
    is_default: bool = False

    @staticmethod
    def from_document(doc: dict[str, Any]) -> TaxRate:
        return TaxRate(
            id=str(doc["id"]),
            name=str(doc.get("name") or ""),
            rate=float(doc.get("rate") or 0),
            is_default=bool(doc.get("isDefault", False)),
        )

