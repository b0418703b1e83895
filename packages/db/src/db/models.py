# This project was developed with assistance from AI tools.
"""
Marketplace domain models

Profiles layered over external identities, property listings with
soft-delete, bank-agent registrations moderated by admins, and loan
applications decided by bank agents.
"""

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
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
from sqlalchemy.orm import relationship

from .database import Base
from .enums import AgentDecision, LoanStatus, PropertyType, RegistrationStatus, UserRole


def _enum_column_type(enum_cls, name: str) -> Enum:
    """Store enum values (not member names) as plain strings."""
    return Enum(
        enum_cls,
        name=name,
        native_enum=False,
        values_callable=lambda members: [m.value for m in members],
        length=32,
    )


class Profile(Base):
    """Application-level user record keyed by the identity provider's subject id."""

    __tablename__ = "profiles"

    id = Column(String(255), primary_key=True)
    display_name = Column(String(200), nullable=False)
    phone = Column(String(50), nullable=True)
    role = Column(_enum_column_type(UserRole, "user_role"), nullable=False, default=UserRole.BUYER)
    address = Column(Text, nullable=True)
    city = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    properties = relationship("Property", back_populates="owner")

    def __repr__(self):
        return f"<Profile(id='{self.id}', role='{self.role}')>"


class Property(Base):
    """Property listing. Never hard-deleted; ``is_active`` drives catalog visibility."""

    __tablename__ = "properties"

    id = Column(Integer, primary_key=True, autoincrement=True)
    owner_id = Column(
        String(255), ForeignKey("profiles.id"), nullable=False, index=True,
    )
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(14, 2), nullable=False)
    location = Column(String(255), nullable=False)
    bedrooms = Column(Integer, nullable=False, default=0)
    bathrooms = Column(Integer, nullable=False, default=0)
    area = Column(Integer, nullable=True)
    property_type = Column(_enum_column_type(PropertyType, "property_type"), nullable=False)
    images = Column(JSON, nullable=False, default=list)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    owner = relationship("Profile", back_populates="properties")

    def __repr__(self):
        return f"<Property(id={self.id}, title='{self.title}', active={self.is_active})>"


class SavedProperty(Base):
    """A user's favorite listing."""

    __tablename__ = "saved_properties"
    __table_args__ = (
        UniqueConstraint("user_id", "property_id", name="uq_saved_property_user_property"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(
        String(255), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    property_id = Column(
        Integer, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    property = relationship("Property")

    def __repr__(self):
        return f"<SavedProperty(user_id='{self.user_id}', property_id={self.property_id})>"


class BankAgentRegistration(Base):
    """Request to join the marketplace as a bank loan agent."""

    __tablename__ = "bank_agent_registrations"
    __table_args__ = (
        # At most one pending/approved registration per user, enforced by the store.
        Index(
            "uq_bank_agent_registrations_active_user",
            "user_id",
            unique=True,
            postgresql_where=text("status IN ('pending', 'approved')"),
            sqlite_where=text("status IN ('pending', 'approved')"),
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(255), ForeignKey("profiles.id"), nullable=False, index=True)

    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    date_of_birth = Column(Date, nullable=False)
    national_id = Column(String(50), nullable=False)
    phone = Column(String(50), nullable=False)
    address = Column(Text, nullable=False)
    city = Column(String(100), nullable=False)
    postal_code = Column(String(20), nullable=True)

    bank_name = Column(String(200), nullable=False)
    position = Column(String(200), nullable=False)
    employee_id = Column(String(100), nullable=False)
    department = Column(String(200), nullable=False)
    work_address = Column(Text, nullable=True)
    supervisor_name = Column(String(200), nullable=True)
    supervisor_phone = Column(String(20), nullable=False)

    national_id_document = Column(Text, nullable=True)
    bank_employment_letter = Column(Text, nullable=True)

    status = Column(
        _enum_column_type(RegistrationStatus, "registration_status"),
        nullable=False,
        default=RegistrationStatus.PENDING,
    )
    submitted_at = Column(DateTime(timezone=True), nullable=False)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    reviewed_by = Column(String(255), nullable=True)
    admin_notes = Column(Text, nullable=True)
    rejection_reason = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    user = relationship("Profile")

    def __repr__(self):
        return f"<BankAgentRegistration(id={self.id}, user_id='{self.user_id}', status='{self.status}')>"


class LoanApplication(Base):
    """Buyer loan request, optionally tied to a property and a bank agent.

    ``status`` and ``bank_agent_decision`` are tracked independently; the
    allowed pairings live in ``LoanStatus.allowed_decisions()``.
    """

    __tablename__ = "loan_applications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    applicant_id = Column(String(255), ForeignKey("profiles.id"), nullable=False, index=True)
    property_id = Column(
        Integer, ForeignKey("properties.id", ondelete="SET NULL"), nullable=True, index=True,
    )
    selected_bank_agent_id = Column(
        Integer,
        ForeignKey("bank_agent_registrations.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    loan_amount = Column(Numeric(14, 2), nullable=False)
    loan_term_years = Column(Integer, nullable=False)
    interest_rate = Column(Numeric(6, 3), nullable=True)
    monthly_payment = Column(Numeric(12, 2), nullable=True)
    employment_status = Column(String(50), nullable=False)
    annual_income = Column(Numeric(14, 2), nullable=False)

    identity_card_document = Column(Text, nullable=True)
    proof_of_income_document = Column(Text, nullable=True)
    submitted_documents = Column(JSON, nullable=False, default=list)

    include_insurance = Column(Boolean, nullable=False, default=False)
    monthly_insurance_amount = Column(Numeric(10, 2), nullable=True)

    status = Column(
        _enum_column_type(LoanStatus, "loan_status"),
        nullable=False,
        default=LoanStatus.PENDING,
        index=True,
    )
    bank_agent_decision = Column(_enum_column_type(AgentDecision, "agent_decision"), nullable=True)
    bank_agent_notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    applicant = relationship("Profile")
    property = relationship("Property")
    selected_bank_agent = relationship("BankAgentRegistration")

    def __repr__(self):
        return f"<LoanApplication(id={self.id}, status='{self.status}')>"
