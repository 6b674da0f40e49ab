from __future__ import annotations

from dataclasses import dataclass, field

from ..models.client_record import CLIENT_COLUMNS, CLIENT_MANDATORY_COLUMNS

"""Column layouts of the bulk upload CSVs, one per import kind."""

__all__ = [
    "ImportLayout",
    "LAYOUTS",
    "get_layout",
    "CLIENTS",
    "EMPLOYEES",
    "ENGAGEMENTS",
    "RECURRING",
]

CLIENTS = "clients"
EMPLOYEES = "employees"
ENGAGEMENTS = "engagements"
RECURRING = "recurring"


@dataclass(frozen=True)
class ImportLayout:
    kind: str
    columns: tuple[str, ...]
    mandatory: tuple[str, ...]
    template_name: str
    examples: tuple[dict[str, str], ...] = field(default_factory=tuple)

    def is_mandatory(self, column: str) -> bool:
        return column in self.mandatory


_CLIENT_EXAMPLES = (
    {
        "Name": "Example Corp",
        "Mail ID": "contact@examplecorp.com",
        "Mobile Number": "9876543210",
        "Category": "Corporate",
        "Partner": "Dojo Davis",
        "Firm Name": "Davis, Martin & Varghese",
        "Phone Number": "0484-2345678",
        "PAN": "AABCE1234F",
        "GSTIN": "22AABCE1234F1Z5",
        "Billing Address Line 1": "123 Business Ave",
        "Billing Address Line 2": "Commerce Street",
        "Billing Address Line 3": "Financial District",
        "Pincode": "400001",
        "State": "Maharashtra",
        "Country": "India",
        "Contact Person": "Rohan Sharma",
        "Contact Person Designation": "Finance Head",
    },
    {
        "Name": "Jane Smith",
        "Mail ID": "jane.smith@email.com",
        "Mobile Number": "9123456780",
        "Category": "Individual",
        "Partner": "Dojo Davis",
        "Firm Name": "Davis, Martin & Varghese",
        "Date of Birth": "15/05/1990",
        "PAN": "JKLMN5678G",
        "Billing Address Line 1": "Apt 4B, Residence Towers",
        "Billing Address Line 2": "Green Valley",
        "Pincode": "560001",
        "State": "Karnataka",
        "Country": "India",
    },
)

LAYOUTS: dict[str, ImportLayout] = {
    CLIENTS: ImportLayout(
        kind=CLIENTS,
        columns=tuple(CLIENT_COLUMNS),
        mandatory=CLIENT_MANDATORY_COLUMNS,
        template_name="clients_template.csv",
        examples=_CLIENT_EXAMPLES,
    ),
    EMPLOYEES: ImportLayout(
        kind=EMPLOYEES,
        columns=("Name", "Email", "Designation", "Role", "Leave Allowance"),
        mandatory=("Name", "Email", "Role"),
        template_name="bulk_employee_creation_template.csv",
        examples=(
            {
                "Name": "Ravi Kumar",
                "Email": "ravi.kumar@example.com",
                "Designation": "Senior Accountant",
                "Role": "Employee",
                "Leave Allowance": "18",
            },
            {
                "Name": "Priya Sharma",
                "Email": "priya.sharma@example.com",
                "Designation": "Audit Assistant",
                "Role": "Articles",
                "Leave Allowance": "12",
            },
        ),
    ),
    ENGAGEMENTS: ImportLayout(
        kind=ENGAGEMENTS,
        columns=("Engagement Type", "Client Name", "Due Date", "Allotted User", "Remarks"),
        mandatory=("Engagement Type", "Client Name", "Due Date", "Allotted User"),
        template_name="bulk_engagement_assignment_template.csv",
        examples=(
            {
                "Engagement Type": "GST Filing",
                "Client Name": "Innovate Inc.",
                "Due Date": "20/07/2025",
                "Allotted User": "Dojo Davis",
                "Remarks": "Q1 return",
            },
        ),
    ),
    RECURRING: ImportLayout(
        kind=RECURRING,
        columns=("Client Name", "Engagement Type", "Fees", "Assigned To", "Reported To", "Due Day", "Due Month"),
        mandatory=("Client Name", "Engagement Type", "Fees", "Assigned To", "Reported To", "Due Day"),
        template_name="bulk_recurring_engagements_template.csv",
        examples=(
            {
                "Client Name": "Innovate Inc.",
                "Engagement Type": "GST Filing",
                "Fees": "10000",
                "Assigned To": "Dojo Davis",
                "Reported To": "Dojo Davis",
                "Due Day": "20",
                "Due Month": "",
            },
            {
                "Client Name": "GreenFuture LLP",
                "Engagement Type": "ITR Filing",
                "Fees": "15000",
                "Assigned To": "Dojo Davis",
                "Reported To": "Dojo Davis",
                "Due Day": "31",
                "Due Month": "7",
            },
        ),
    ),
}


def get_layout(kind: str) -> ImportLayout:
    try:
        return LAYOUTS[kind]
    except KeyError:
        raise ValueError(f"unknown import kind: {kind!r} (expected one of {', '.join(LAYOUTS)})") from None
