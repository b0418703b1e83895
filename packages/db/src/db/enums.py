# This project was developed with assistance from AI tools.
"""
Domain enums for the marketplace listing and loan workflows.

Shared domain types used by both SQLAlchemy models (db package)
and Pydantic schemas (api package).
"""

import enum


class UserRole(str, enum.Enum):
    BUYER = "buyer"
    SELLER = "seller"
    BANK_AGENT = "bank_agent"
    ADMIN = "admin"

    @classmethod
    def self_service_roles(cls) -> frozenset["UserRole"]:
        """Roles a user may pick for themselves at first login."""
        return frozenset({cls.BUYER, cls.SELLER})


class PropertyType(str, enum.Enum):
    HOUSE = "house"
    APARTMENT = "apartment"
    CONDO = "condo"
    TOWNHOUSE = "townhouse"
    VILLA = "villa"
    STUDIO = "studio"
    PENTHOUSE = "penthouse"
    COMMERCIAL = "commercial"
    LAND = "land"


class RegistrationStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

    @classmethod
    def active_statuses(cls) -> frozenset["RegistrationStatus"]:
        """Statuses that block a user from submitting another registration."""
        return frozenset({cls.PENDING, cls.APPROVED})

    @classmethod
    def review_outcomes(cls) -> frozenset["RegistrationStatus"]:
        return frozenset({cls.APPROVED, cls.REJECTED})


class AgentDecision(str, enum.Enum):
    APPROVED = "approved"
    REJECTED = "rejected"


class LoanStatus(str, enum.Enum):
    PENDING = "pending"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    REJECTED = "rejected"

    @classmethod
    def terminal_statuses(cls) -> frozenset["LoanStatus"]:
        """Statuses after which the application is decided."""
        return frozenset({cls.APPROVED, cls.REJECTED})

    @classmethod
    def valid_transitions(cls) -> dict["LoanStatus", frozenset["LoanStatus"]]:
        """Allowed status transitions for a loan application."""
        return {
            cls.PENDING: frozenset({cls.UNDER_REVIEW, cls.APPROVED, cls.REJECTED}),
            cls.UNDER_REVIEW: frozenset({cls.PENDING, cls.APPROVED, cls.REJECTED}),
            cls.APPROVED: frozenset(),
            cls.REJECTED: frozenset(),
        }

    @classmethod
    def allowed_decisions(cls) -> dict["LoanStatus", AgentDecision | None]:
        """The only bank_agent_decision value each status may be paired with."""
        return {
            cls.PENDING: None,
            cls.UNDER_REVIEW: None,
            cls.APPROVED: AgentDecision.APPROVED,
            cls.REJECTED: AgentDecision.REJECTED,
        }
