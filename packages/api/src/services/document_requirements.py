# This project was developed with assistance from AI tools.
"""Actor document requirement matrix.

Determines which documents each actor kind must (or may) upload, keyed by
role and by individual/company. Some rows apply only under a condition:
foreign nationals, property-backed guarantees or income-backed guarantees.

This checklist drives the document status shown in policy progress. It is
never a precondition for a status transition.
"""

from dataclasses import dataclass
from enum import Enum

from db.enums import ActorRole, DocumentCategory, GuaranteeMethod, Nationality, ValidationStatus

from ..schemas.document import ActorDocumentStatus, DocumentRequirementItem


class RequirementCondition(str, Enum):
    FOREIGN = "foreign"
    PROPERTY_GUARANTEE = "propertyGuarantee"
    INCOME_GUARANTEE = "incomeGuarantee"


@dataclass(frozen=True)
class DocumentRequirement:
    category: DocumentCategory
    required: bool
    condition: RequirementCondition | None = None


def _req(category, required=True, condition=None) -> DocumentRequirement:
    return DocumentRequirement(category, required, condition)


_C = DocumentCategory
_FOREIGN = RequirementCondition.FOREIGN
_PROPERTY = RequirementCondition.PROPERTY_GUARANTEE
_INCOME = RequirementCondition.INCOME_GUARANTEE

# DOCUMENT_REQUIREMENTS[role]["individual" | "company"]
DOCUMENT_REQUIREMENTS: dict[ActorRole, dict[str, tuple[DocumentRequirement, ...]]] = {
    ActorRole.TENANT: {
        "individual": (
            _req(_C.IDENTIFICATION),
            _req(_C.INCOME_PROOF),
            _req(_C.ADDRESS_PROOF),
            _req(_C.BANK_STATEMENT),
            _req(_C.IMMIGRATION_DOCUMENT, condition=_FOREIGN),
        ),
        "company": (
            _req(_C.COMPANY_CONSTITUTION),
            _req(_C.LEGAL_POWERS),
            _req(_C.IDENTIFICATION),
            _req(_C.TAX_STATUS_CERTIFICATE),
            _req(_C.BANK_STATEMENT),
            _req(_C.ADDRESS_PROOF, required=False),
        ),
    },
    ActorRole.LANDLORD: {
        "individual": (
            _req(_C.IDENTIFICATION),
            _req(_C.TAX_STATUS_CERTIFICATE, required=False),
            _req(_C.PROPERTY_DEED),
            _req(_C.PROPERTY_TAX_STATEMENT),
            _req(_C.BANK_STATEMENT, required=False),
        ),
        "company": (
            _req(_C.COMPANY_CONSTITUTION),
            _req(_C.LEGAL_POWERS),
            _req(_C.TAX_STATUS_CERTIFICATE),
            _req(_C.PROPERTY_DEED),
            _req(_C.PROPERTY_TAX_STATEMENT),
            _req(_C.BANK_STATEMENT, required=False),
        ),
    },
    ActorRole.AVAL: {
        "individual": (
            _req(_C.IDENTIFICATION),
            _req(_C.INCOME_PROOF),
            _req(_C.ADDRESS_PROOF),
            _req(_C.BANK_STATEMENT),
            _req(_C.IMMIGRATION_DOCUMENT, condition=_FOREIGN),
            _req(_C.PROPERTY_REGISTRY, required=False),
        ),
        "company": (
            _req(_C.COMPANY_CONSTITUTION),
            _req(_C.LEGAL_POWERS),
            _req(_C.IDENTIFICATION),
            _req(_C.TAX_STATUS_CERTIFICATE),
            _req(_C.BANK_STATEMENT),
            _req(_C.PROPERTY_REGISTRY, required=False),
        ),
    },
    ActorRole.JOINT_OBLIGOR: {
        "individual": (
            _req(_C.IDENTIFICATION),
            _req(_C.ADDRESS_PROOF),
            _req(_C.BANK_STATEMENT),
            _req(_C.IMMIGRATION_DOCUMENT, condition=_FOREIGN),
            _req(_C.INCOME_PROOF, condition=_INCOME),
            _req(_C.PROPERTY_DEED, condition=_PROPERTY),
            _req(_C.PROPERTY_TAX_STATEMENT, condition=_PROPERTY),
            _req(_C.PROPERTY_REGISTRY, required=False, condition=_PROPERTY),
        ),
        "company": (
            _req(_C.COMPANY_CONSTITUTION),
            _req(_C.LEGAL_POWERS),
            _req(_C.IDENTIFICATION),
            _req(_C.TAX_STATUS_CERTIFICATE),
            _req(_C.BANK_STATEMENT),
            _req(_C.INCOME_PROOF, condition=_INCOME),
            _req(_C.PROPERTY_DEED, condition=_PROPERTY),
            _req(_C.PROPERTY_TAX_STATEMENT, condition=_PROPERTY),
            _req(_C.PROPERTY_REGISTRY, required=False, condition=_PROPERTY),
        ),
    },
}

CATEGORY_LABELS: dict[DocumentCategory, str] = {
    _C.IDENTIFICATION: "Official Identification",
    _C.INCOME_PROOF: "Proof of Income",
    _C.ADDRESS_PROOF: "Proof of Address",
    _C.BANK_STATEMENT: "Bank Statement",
    _C.PROPERTY_DEED: "Property Deed",
    _C.TAX_RETURN: "Tax Return",
    _C.EMPLOYMENT_LETTER: "Employment Letter",
    _C.PROPERTY_TAX_STATEMENT: "Property Tax Statement",
    _C.MARRIAGE_CERTIFICATE: "Marriage Certificate",
    _C.COMPANY_CONSTITUTION: "Articles of Incorporation",
    _C.LEGAL_POWERS: "Power of Attorney",
    _C.TAX_STATUS_CERTIFICATE: "Tax Status Certificate",
    _C.CREDIT_REPORT: "Credit Report",
    _C.PROPERTY_REGISTRY: "Public Property Registry Certificate",
    _C.PROPERTY_APPRAISAL: "Property Appraisal",
    _C.PASSPORT: "Passport",
    _C.IMMIGRATION_DOCUMENT: "Immigration Document",
    _C.UTILITY_BILL: "Utility Bill",
    _C.PAYROLL_RECEIPT: "Payroll Receipt",
    _C.OTHER: "Other",
}


def _condition_applies(
    condition: RequirementCondition | None,
    nationality: Nationality | None,
    guarantee_method: GuaranteeMethod | None,
) -> bool:
    if condition is None:
        return True
    if condition == RequirementCondition.FOREIGN:
        return nationality == Nationality.FOREIGN
    if condition == RequirementCondition.PROPERTY_GUARANTEE:
        return guarantee_method == GuaranteeMethod.PROPERTY
    if condition == RequirementCondition.INCOME_GUARANTEE:
        return guarantee_method == GuaranteeMethod.INCOME
    return True


def get_document_requirements(
    role: ActorRole,
    is_company: bool,
    nationality: Nationality | None = None,
    guarantee_method: GuaranteeMethod | None = None,
) -> list[DocumentRequirement]:
    """Requirements for an actor kind, with conditional rows filtered in or out."""
    entity = "company" if is_company else "individual"
    return [
        req
        for req in DOCUMENT_REQUIREMENTS[ActorRole(role)][entity]
        if _condition_applies(req.condition, nationality, guarantee_method)
    ]


def get_required_documents(role, is_company, nationality=None, guarantee_method=None):
    return [
        r
        for r in get_document_requirements(role, is_company, nationality, guarantee_method)
        if r.required
    ]


def get_optional_documents(role, is_company, nationality=None, guarantee_method=None):
    return [
        r
        for r in get_document_requirements(role, is_company, nationality, guarantee_method)
        if not r.required
    ]


def are_required_documents_uploaded(
    role: ActorRole,
    is_company: bool,
    uploaded_categories,
    nationality: Nationality | None = None,
    guarantee_method: GuaranteeMethod | None = None,
) -> bool:
    uploaded = set(uploaded_categories)
    return all(
        req.category in uploaded
        for req in get_required_documents(role, is_company, nationality, guarantee_method)
    )


def requirements_for_actor(role: ActorRole, actor) -> list[DocumentRequirement]:
    return get_document_requirements(
        role,
        bool(actor.is_company),
        nationality=actor.nationality,
        guarantee_method=getattr(actor, "guarantee_method", None),
    )


# Later statuses win when an actor uploaded several files for one category.
_STATUS_RANK = {
    ValidationStatus.REJECTED: 0,
    ValidationStatus.PENDING: 1,
    ValidationStatus.IN_REVIEW: 2,
    ValidationStatus.APPROVED: 3,
}


def get_actor_document_status(role: ActorRole, actor, documents: list) -> ActorDocumentStatus:
    """Checklist of an actor's documents against their requirements.

    ``documents`` are the actor's ActorDocument rows. Validation status is
    reported as-is and has no effect on the actor's completion flag.
    """
    best: dict[DocumentCategory, ValidationStatus] = {}
    for doc in documents:
        status = ValidationStatus(doc.validation_status)
        current = best.get(doc.category)
        if current is None or _STATUS_RANK[status] > _STATUS_RANK[current]:
            best[doc.category] = status

    items = []
    for req in requirements_for_actor(role, actor):
        status = best.get(req.category)
        items.append(
            DocumentRequirementItem(
                category=req.category,
                label=CATEGORY_LABELS[req.category],
                required=req.required,
                uploaded=status is not None,
                validation_status=status,
            )
        )

    required = [i for i in items if i.required]
    return ActorDocumentStatus(
        role=role,
        actor_id=actor.id,
        display_name=actor.display_name,
        requirements=items,
        all_required_uploaded=all(i.uploaded for i in required),
        all_required_approved=all(
            i.validation_status == ValidationStatus.APPROVED for i in required
        ),
    )
