# This project was developed with assistance from AI tools.
"""
Domain enums for the rental-guarantee policy lifecycle.

Shared domain types used by both SQLAlchemy models (db package)
and Pydantic schemas (api package). PolicyStatus and GuarantorType values
are persisted and compared by string equality, so they must never change.
"""

import enum


class PolicyStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    COLLECTING_INFO = "COLLECTING_INFO"
    UNDER_INVESTIGATION = "UNDER_INVESTIGATION"
    INVESTIGATION_REJECTED = "INVESTIGATION_REJECTED"
    PENDING_APPROVAL = "PENDING_APPROVAL"
    APPROVED = "APPROVED"
    CONTRACT_PENDING = "CONTRACT_PENDING"
    CONTRACT_SIGNED = "CONTRACT_SIGNED"
    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"

    @classmethod
    def terminal_statuses(cls) -> frozenset["PolicyStatus"]:
        """Statuses a policy never leaves without an administrative override."""
        return frozenset({cls.EXPIRED, cls.CANCELLED})

    @classmethod
    def valid_transitions(cls) -> dict["PolicyStatus", frozenset["PolicyStatus"]]:
        """Allowed status transitions in the policy lifecycle."""
        return {
            cls.DRAFT: frozenset({cls.COLLECTING_INFO, cls.UNDER_INVESTIGATION, cls.CANCELLED}),
            cls.COLLECTING_INFO: frozenset({cls.UNDER_INVESTIGATION, cls.CANCELLED}),
            cls.UNDER_INVESTIGATION: frozenset(
                {cls.INVESTIGATION_REJECTED, cls.PENDING_APPROVAL, cls.CANCELLED}
            ),
            cls.INVESTIGATION_REJECTED: frozenset({cls.UNDER_INVESTIGATION, cls.CANCELLED}),
            cls.PENDING_APPROVAL: frozenset(
                {cls.APPROVED, cls.INVESTIGATION_REJECTED, cls.CANCELLED}
            ),
            cls.APPROVED: frozenset({cls.CONTRACT_PENDING, cls.CANCELLED}),
            cls.CONTRACT_PENDING: frozenset({cls.CONTRACT_SIGNED, cls.CANCELLED}),
            cls.CONTRACT_SIGNED: frozenset({cls.ACTIVE, cls.CANCELLED}),
            cls.ACTIVE: frozenset({cls.EXPIRED, cls.CANCELLED}),
            cls.EXPIRED: frozenset(),
            cls.CANCELLED: frozenset(),
        }


class GuarantorType(str, enum.Enum):
    NONE = "NONE"
    JOINT_OBLIGOR = "JOINT_OBLIGOR"
    AVAL = "AVAL"
    BOTH = "BOTH"


class ActorRole(str, enum.Enum):
    LANDLORD = "landlord"
    TENANT = "tenant"
    JOINT_OBLIGOR = "joint_obligor"
    AVAL = "aval"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").title()


class UserRole(str, enum.Enum):
    ADMIN = "admin"
    STAFF = "staff"
    BROKER = "broker"


class PerformedByType(str, enum.Enum):
    ACTOR = "actor"
    ADMIN = "admin"
    SYSTEM = "system"
    USER = "user"


class DocumentCategory(str, enum.Enum):
    IDENTIFICATION = "IDENTIFICATION"
    INCOME_PROOF = "INCOME_PROOF"
    ADDRESS_PROOF = "ADDRESS_PROOF"
    BANK_STATEMENT = "BANK_STATEMENT"
    PROPERTY_DEED = "PROPERTY_DEED"
    TAX_RETURN = "TAX_RETURN"
    EMPLOYMENT_LETTER = "EMPLOYMENT_LETTER"
    PROPERTY_TAX_STATEMENT = "PROPERTY_TAX_STATEMENT"
    MARRIAGE_CERTIFICATE = "MARRIAGE_CERTIFICATE"
    COMPANY_CONSTITUTION = "COMPANY_CONSTITUTION"
    LEGAL_POWERS = "LEGAL_POWERS"
    TAX_STATUS_CERTIFICATE = "TAX_STATUS_CERTIFICATE"
    CREDIT_REPORT = "CREDIT_REPORT"
    PROPERTY_REGISTRY = "PROPERTY_REGISTRY"
    PROPERTY_APPRAISAL = "PROPERTY_APPRAISAL"
    PASSPORT = "PASSPORT"
    IMMIGRATION_DOCUMENT = "IMMIGRATION_DOCUMENT"
    UTILITY_BILL = "UTILITY_BILL"
    PAYROLL_RECEIPT = "PAYROLL_RECEIPT"
    OTHER = "OTHER"


class ValidationStatus(str, enum.Enum):
    PENDING = "PENDING"
    IN_REVIEW = "IN_REVIEW"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class VerificationStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class InvestigationVerdict(str, enum.Enum):
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class Nationality(str, enum.Enum):
    MEXICAN = "MEXICAN"
    FOREIGN = "FOREIGN"


class GuaranteeMethod(str, enum.Enum):
    PROPERTY = "property"
    INCOME = "income"


class EmploymentStatus(str, enum.Enum):
    EMPLOYED = "employed"
    SELF_EMPLOYED = "self_employed"
    BUSINESS_OWNER = "business_owner"
    RETIRED = "retired"
    UNEMPLOYED = "unemployed"
    OTHER = "other"


class ReferenceType(str, enum.Enum):
    PERSONAL = "personal"
    COMMERCIAL = "commercial"
