# This project was developed with assistance from AI tools.
"""
Rental-guarantee domain models

Policies, the four actor kinds that take part in a policy (landlord, tenant,
joint obligor, aval), their documents and references, the investigation and
contract records that gate later lifecycle steps, pricing packages, and the
append-only policy activity log.
"""

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
    text,
)
from sqlalchemy.orm import declared_attr, relationship

from .database import Base
from .enums import (
    ActorRole,
    DocumentCategory,
    EmploymentStatus,
    GuaranteeMethod,
    GuarantorType,
    InvestigationVerdict,
    Nationality,
    PolicyStatus,
    ReferenceType,
    ValidationStatus,
    VerificationStatus,
)


class Package(Base):
    """Pricing tier: flat fee, or percentage of rent with a floor."""

    __tablename__ = "packages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), unique=True, nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(12, 2), nullable=False, default=0)
    percentage = Column(Numeric(5, 2), nullable=True)
    min_amount = Column(Numeric(12, 2), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Package(id={self.id}, name='{self.name}')>"


class Policy(Base):
    """Rental protection contract created by a broker."""

    __tablename__ = "policies"

    id = Column(Integer, primary_key=True, autoincrement=True)
    policy_number = Column(String(50), unique=True, nullable=False, index=True)
    status = Column(
        Enum(PolicyStatus, name="policy_status", native_enum=False),
        nullable=False,
        default=PolicyStatus.DRAFT,
    )
    guarantor_type = Column(
        Enum(GuarantorType, name="guarantor_type", native_enum=False),
        nullable=False,
        default=GuarantorType.NONE,
    )
    rent_amount = Column(Numeric(12, 2), nullable=False)
    property_address = Column(Text, nullable=True)
    contract_length_months = Column(Integer, nullable=False, default=12)
    package_id = Column(
        Integer, ForeignKey("packages.id", ondelete="SET NULL"), nullable=True, index=True,
    )
    tenant_percentage = Column(Numeric(5, 2), nullable=False, default=100)
    landlord_percentage = Column(Numeric(5, 2), nullable=False, default=0)
    total_price = Column(Numeric(12, 2), nullable=True)
    created_by = Column(String(255), nullable=False, index=True)
    review_notes = Column(Text, nullable=True)
    rejection_reason = Column(Text, nullable=True)
    submitted_at = Column(DateTime(timezone=True), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    rejected_at = Column(DateTime(timezone=True), nullable=True)
    activated_at = Column(DateTime(timezone=True), nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    package = relationship("Package")
    landlords = relationship(
        "Landlord", back_populates="policy", cascade="all, delete-orphan",
        order_by="Landlord.id",
    )
    tenant = relationship(
        "Tenant", back_populates="policy", uselist=False, cascade="all, delete-orphan",
    )
    joint_obligors = relationship(
        "JointObligor", back_populates="policy", cascade="all, delete-orphan",
        order_by="JointObligor.id",
    )
    avals = relationship(
        "Aval", back_populates="policy", cascade="all, delete-orphan",
        order_by="Aval.id",
    )
    investigation = relationship(
        "Investigation", back_populates="policy", uselist=False, cascade="all, delete-orphan",
    )
    contracts = relationship(
        "Contract", back_populates="policy", cascade="all, delete-orphan",
        order_by="Contract.id",
    )

    def __repr__(self):
        return f"<Policy(id={self.id}, number='{self.policy_number}', status='{self.status}')>"


class ActorMixin:
    """Columns shared by every actor kind (person or company party to a policy)."""

    role: ActorRole

    id = Column(Integer, primary_key=True, autoincrement=True)
    is_company = Column(Boolean, nullable=False, default=False)
    first_name = Column(String(100), nullable=True)
    middle_name = Column(String(100), nullable=True)
    paternal_last_name = Column(String(100), nullable=True)
    maternal_last_name = Column(String(100), nullable=True)
    company_name = Column(String(255), nullable=True)
    legal_rep_name = Column(String(255), nullable=True)
    email = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=True)
    rfc = Column(String(20), nullable=True)
    curp = Column(String(20), nullable=True)
    nationality = Column(
        Enum(Nationality, name="nationality", native_enum=False),
        nullable=False,
        default=Nationality.MEXICAN,
    )
    address = Column(Text, nullable=True)
    employment_status = Column(
        Enum(EmploymentStatus, name="employment_status", native_enum=False),
        nullable=True,
    )
    occupation = Column(String(255), nullable=True)
    employer_name = Column(String(255), nullable=True)
    monthly_income = Column(Numeric(12, 2), nullable=True)
    information_complete = Column(Boolean, nullable=False, default=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    verification_status = Column(
        Enum(VerificationStatus, name="verification_status", native_enum=False),
        nullable=False,
        default=VerificationStatus.PENDING,
    )
    verified_by = Column(String(255), nullable=True)
    verified_at = Column(DateTime(timezone=True), nullable=True)
    verification_notes = Column(Text, nullable=True)
    access_token = Column(String(128), unique=True, nullable=True, index=True)
    token_expiry = Column(DateTime(timezone=True), nullable=True)
    archived_at = Column(DateTime(timezone=True), nullable=True)
    archive_reason = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    @declared_attr
    def policy_id(cls):
        return Column(
            Integer, ForeignKey("policies.id", ondelete="CASCADE"), nullable=False, index=True,
        )

    @property
    def display_name(self) -> str:
        if self.is_company and self.company_name:
            return self.company_name
        parts = [self.first_name, self.paternal_last_name, self.maternal_last_name]
        name = " ".join(p for p in parts if p)
        return name or self.role.label

    def __repr__(self):
        return (
            f"<{type(self).__name__}(id={self.id}, policy_id={self.policy_id}, "
            f"complete={self.information_complete})>"
        )


class Landlord(ActorMixin, Base):
    """Property owner. One primary landlord per policy, co-owners allowed."""

    __tablename__ = "landlords"
    __table_args__ = (
        Index(
            "uq_landlords_primary_per_policy",
            "policy_id",
            unique=True,
            postgresql_where=text("is_primary AND archived_at IS NULL"),
        ),
    )

    role = ActorRole.LANDLORD

    is_primary = Column(Boolean, nullable=False, default=False)
    bank_name = Column(String(100), nullable=True)
    account_holder = Column(String(255), nullable=True)
    clabe = Column(String(18), nullable=True)

    policy = relationship("Policy", back_populates="landlords")


class Tenant(ActorMixin, Base):
    """Renter covered by the policy. Exactly one per policy."""

    __tablename__ = "tenants"
    __table_args__ = (UniqueConstraint("policy_id", name="uq_tenants_policy"),)

    role = ActorRole.TENANT

    previous_address = Column(Text, nullable=True)
    previous_landlord_name = Column(String(255), nullable=True)
    previous_rent_amount = Column(Numeric(12, 2), nullable=True)

    policy = relationship("Policy", back_populates="tenant")


class _GuarantorMixin:
    """Guarantee-property columns shared by joint obligors and avals."""

    property_value = Column(Numeric(14, 2), nullable=True)
    property_deed_number = Column(String(100), nullable=True)
    property_registry = Column(String(100), nullable=True)
    guarantee_property_address = Column(Text, nullable=True)


class JointObligor(_GuarantorMixin, ActorMixin, Base):
    """Co-obligor who guarantees with income or property."""

    __tablename__ = "joint_obligors"

    role = ActorRole.JOINT_OBLIGOR

    guarantee_method = Column(
        Enum(GuaranteeMethod, name="guarantee_method", native_enum=False),
        nullable=True,
    )

    policy = relationship("Policy", back_populates="joint_obligors")


class Aval(_GuarantorMixin, ActorMixin, Base):
    """Guarantor who backs the policy with real estate."""

    __tablename__ = "avals"

    role = ActorRole.AVAL

    policy = relationship("Policy", back_populates="avals")


class ActorReference(Base):
    """Personal or commercial reference supplied by an actor."""

    __tablename__ = "actor_references"
    __table_args__ = (Index("ix_actor_references_owner", "actor_role", "actor_id"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    policy_id = Column(
        Integer, ForeignKey("policies.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    actor_role = Column(Enum(ActorRole, name="actor_role", native_enum=False), nullable=False)
    actor_id = Column(Integer, nullable=False)
    reference_type = Column(
        Enum(ReferenceType, name="reference_type", native_enum=False),
        nullable=False,
        default=ReferenceType.PERSONAL,
    )
    name = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=False)
    email = Column(String(255), nullable=True)
    relationship_to_actor = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<ActorReference(id={self.id}, owner={self.actor_role}:{self.actor_id})>"


class ActorDocument(Base):
    """Uploaded file owned by exactly one actor.

    Ownership is a tagged pair (actor_role, actor_id) rather than one
    nullable foreign key per actor table, so a document can never belong
    to two actors at once.
    """

    __tablename__ = "actor_documents"
    __table_args__ = (Index("ix_actor_documents_owner", "actor_role", "actor_id"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    policy_id = Column(
        Integer, ForeignKey("policies.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    actor_role = Column(Enum(ActorRole, name="actor_role", native_enum=False), nullable=False)
    actor_id = Column(Integer, nullable=False)
    category = Column(
        Enum(DocumentCategory, name="document_category", native_enum=False),
        nullable=False,
    )
    file_name = Column(String(255), nullable=False)
    file_path = Column(String(500), nullable=True)
    content_type = Column(String(100), nullable=True)
    file_size = Column(Integer, nullable=True)
    uploaded_by = Column(String(255), nullable=True)
    validation_status = Column(
        Enum(ValidationStatus, name="validation_status", native_enum=False),
        nullable=False,
        default=ValidationStatus.PENDING,
    )
    rejection_reason = Column(Text, nullable=True)
    validated_by = Column(String(255), nullable=True)
    validated_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return (
            f"<ActorDocument(id={self.id}, owner={self.actor_role}:{self.actor_id}, "
            f"category='{self.category}')>"
        )


class Investigation(Base):
    """Background investigation opened when a policy enters UNDER_INVESTIGATION."""

    __tablename__ = "investigations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    policy_id = Column(
        Integer, ForeignKey("policies.id", ondelete="CASCADE"),
        nullable=False, unique=True, index=True,
    )
    verdict = Column(
        Enum(InvestigationVerdict, name="investigation_verdict", native_enum=False),
        nullable=True,
    )
    notes = Column(Text, nullable=True)
    completed_by = Column(String(255), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    policy = relationship("Policy", back_populates="investigation")

    def __repr__(self):
        return f"<Investigation(policy_id={self.policy_id}, verdict='{self.verdict}')>"


class Contract(Base):
    """Generated or uploaded contract document for a policy."""

    __tablename__ = "contracts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    policy_id = Column(
        Integer, ForeignKey("policies.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    file_path = Column(String(500), nullable=False)
    is_current = Column(Boolean, nullable=False, default=True)
    uploaded_by = Column(String(255), nullable=True)
    signed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    policy = relationship("Policy", back_populates="contracts")

    def __repr__(self):
        return f"<Contract(id={self.id}, policy_id={self.policy_id}, current={self.is_current})>"


class PolicyActivity(Base):
    """Append-only policy activity log. INSERT + SELECT only -- no UPDATE or DELETE."""

    __tablename__ = "policy_activities"

    id = Column(Integer, primary_key=True, autoincrement=True)
    policy_id = Column(
        Integer, ForeignKey("policies.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    action = Column(String(100), nullable=False, index=True)
    description = Column(Text, nullable=False)
    details = Column(JSON, nullable=True)
    performed_by_type = Column(String(20), nullable=False, default="system")
    performed_by_id = Column(String(255), nullable=True)
    ip_address = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<PolicyActivity(id={self.id}, policy_id={self.policy_id}, action='{self.action}')>"


ACTOR_MODELS: dict[ActorRole, type] = {
    ActorRole.LANDLORD: Landlord,
    ActorRole.TENANT: Tenant,
    ActorRole.JOINT_OBLIGOR: JointObligor,
    ActorRole.AVAL: Aval,
}
