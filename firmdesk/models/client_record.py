from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .sentinels import MOBILE_NOT_AVAILABLE, PAN_NOT_AVAILABLE, UNASSIGNED

"""ClientRecord domain model and the client CSV column layout.

A ClientRecord is both one persisted client document and the shape an import
row is turned into at commit time. Documents use camelCase keys and repeat
their own id in the body.
"""

__all__ = [
    "ClientRecord",
    "CLIENT_COLUMNS",
    "CLIENT_MANDATORY_COLUMNS",
    "CLIENT_OPTIONAL_FIELDS",
]

# CSV header -> document field. Partner / Firm Name are resolved to ids and
# therefore have no direct document field.
CLIENT_COLUMNS: dict[str, str | None] = {
    "Name": "name",
    "Mail ID": "mailId",
    "Mobile Number": "mobileNumber",
    "Category": "category",
    "Partner": None,
    "Firm Name": None,
    "Phone Number": "phoneNumber",
    "Date of Birth": "dateOfBirth",
    "Linked Client IDs": "linkedClientIds",
    "PAN": "pan",
    "GSTIN": "gstin",
    "Billing Address Line 1": "billingAddressLine1",
    "Billing Address Line 2": "billingAddressLine2",
    "Billing Address Line 3": "billingAddressLine3",
    "Pincode": "pincode",
    "State": "state",
    "Country": "country",
    "Contact Person": "contactPerson",
    "Contact Person Designation": "contactPersonDesignation",
}

CLIENT_MANDATORY_COLUMNS = ("Name", "Mail ID", "Mobile Number", "Category", "Partner", "Firm Name")

# Plain string fields copied from the row when present
CLIENT_OPTIONAL_FIELDS = (
    "Phone Number",
    "Date of Birth",
    "GSTIN",
    "Billing Address Line 1",
    "Billing Address Line 2",
    "Billing Address Line 3",
    "Pincode",
    "State",
    "Country",
    "Contact Person",
    "Contact Person Designation",
)


@dataclass(frozen=True)
class ClientRecord:
    """A persisted client of the firm.

    `mail_id`, `mobile_number`, `category`, `partner_id`, `firm_id` and `pan`
    may hold sentinel placeholders when the source data was incomplete.
    """
    id: str
    name: str
    mail_id: str = UNASSIGNED
    mobile_number: str = MOBILE_NOT_AVAILABLE
    category: str = UNASSIGNED
    partner_id: str = UNASSIGNED
    firm_id: str = UNASSIGNED
    pan: str = PAN_NOT_AVAILABLE
    phone_number: str | None = None
    date_of_birth: str | None = None
    gstin: str | None = None
    billing_address_line1: str | None = None
    billing_address_line2: str | None = None
    billing_address_line3: str | None = None
    pincode: str | None = None
    state: str | None = None
    country: str | None = None
    contact_person: str | None = None
    contact_person_designation: str | None = None
    linked_client_ids: tuple[str, ...] = field(default_factory=tuple)
    created_at: str | None = None
    last_updated: str | None = None

    @property
    def has_pan(self) -> bool:
        return bool(self.pan) and self.pan.strip().upper() != PAN_NOT_AVAILABLE

    @staticmethod
    def from_document(doc: dict[str, Any]) -> ClientRecord:
        linked = doc.get("linkedClientIds") or ()
        return ClientRecord(
            id=str(doc["id"]),
            name=str(doc.get("name") or ""),
            mail_id=doc.get("mailId") or UNASSIGNED,
            mobile_number=str(doc.get("mobileNumber") or MOBILE_NOT_AVAILABLE),
            category=doc.get("category") or UNASSIGNED,
            partner_id=doc.get("partnerId") or UNASSIGNED,
            firm_id=doc.get("firmId") or UNASSIGNED,
            pan=doc.get("pan") or PAN_NOT_AVAILABLE,
            phone_number=doc.get("phoneNumber"),
            date_of_birth=doc.get("dateOfBirth"),
            gstin=doc.get("gstin"),
            billing_address_line1=doc.get("billingAddressLine1"),
            billing_address_line2=doc.get("billingAddressLine2"),
            billing_address_line3=doc.get("billingAddressLine3"),
            pincode=doc.get("pincode"),
            state=doc.get("state"),
            country=doc.get("country"),
            contact_person=doc.get("contactPerson"),
            contact_person_designation=doc.get("contactPersonDesignation"),
            linked_client_ids=tuple(linked),
            created_at=doc.get("createdAt"),
            last_updated=doc.get("lastUpdated"),
        )

    def to_document(self) -> dict[str, Any]:
        doc: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "mailId": self.mail_id,
            "mobileNumber": self.mobile_number,
            "category": self.category,
            "partnerId": self.partner_id,
            "firmId": self.firm_id,
            "pan": self.pan,
            "linkedClientIds": list(self.linked_client_ids),
        }
        optional = {
            "phoneNumber": self.phone_number,
            "dateOfBirth": self.date_of_birth,
            "gstin": self.gstin,
            "billingAddressLine1": self.billing_address_line1,
            "billingAddressLine2": self.billing_address_line2,
            "billingAddressLine3": self.billing_address_line3,
            "pincode": self.pincode,
            "state": self.state,
            "country": self.country,
            "contactPerson": self.contact_person,
            "contactPersonDesignation": self.contact_person_designation,
            "createdAt": self.created_at,
            "lastUpdated": self.last_updated,
        }
        doc.update({k: v for k, v in optional.items() if v is not None})
        return doc
