# This project was developed with assistance from AI tools.
"""Pure authorization helpers with no FastAPI or HTTP dependencies.

``require_capability`` is the single gate every mutating service call
goes through before touching a resource. Route-level role checks
(``middleware.auth.require_roles``) only decide who may call an endpoint;
the capability gate decides whether *this* actor may act on *this* row.
"""

import enum
import logging

from db import BankAgentRegistration, LoanApplication, Profile, Property
from db.enums import UserRole

from ..schemas.auth import UserContext
from .errors import AuthorizationError

logger = logging.getLogger(__name__)


class Action(str, enum.Enum):
    PROPERTY_UPDATE = "property:update"
    PROPERTY_DEACTIVATE = "property:deactivate"
    LOAN_READ = "loan:read"
    LOAN_DECIDE = "loan:decide"
    LOAN_MANAGE = "loan:manage"
    LOAN_AMEND = "loan:amend"
    LOAN_DELETE = "loan:delete"
    REGISTRATION_REVIEW = "registration:review"
    PROFILE_SET_ROLE = "profile:set_role"


def is_admin(actor: UserContext) -> bool:
    return actor.role == UserRole.ADMIN


def is_assigned_agent(actor: UserContext, application: LoanApplication) -> bool:
    """True when the actor is the bank agent selected on the application.

    Expects ``application.selected_bank_agent`` to be eagerly loaded.
    """
    if actor.role != UserRole.BANK_AGENT:
        return False
    registration: BankAgentRegistration | None = application.selected_bank_agent
    return registration is not None and registration.user_id == actor.user_id


def _is_applicant(actor: UserContext, application: LoanApplication) -> bool:
    return application.applicant_id == actor.user_id


def _property_owner(actor: UserContext, resource: Property) -> bool:
    return resource.owner_id == actor.user_id


_RULES = {
    Action.PROPERTY_UPDATE: _property_owner,
    Action.PROPERTY_DEACTIVATE: _property_owner,
    Action.LOAN_READ: lambda actor, app: (
        _is_applicant(actor, app) or is_assigned_agent(actor, app) or is_admin(actor)
    ),
    Action.LOAN_DECIDE: is_assigned_agent,
    Action.LOAN_MANAGE: lambda actor, app: is_assigned_agent(actor, app) or is_admin(actor),
    Action.LOAN_AMEND: lambda actor, app: (
        _is_applicant(actor, app) or is_assigned_agent(actor, app) or is_admin(actor)
    ),
    Action.LOAN_DELETE: lambda actor, app: _is_applicant(actor, app) or is_admin(actor),
    Action.REGISTRATION_REVIEW: lambda actor, _reg: is_admin(actor),
    Action.PROFILE_SET_ROLE: lambda actor, _profile: is_admin(actor),
}


def has_capability(
    actor: UserContext,
    resource: Property | LoanApplication | BankAgentRegistration | Profile,
    action: Action,
) -> bool:
    """Return whether ``actor`` may perform ``action`` on ``resource``."""
    return bool(_RULES[action](actor, resource))


def require_capability(
    actor: UserContext,
    resource: Property | LoanApplication | BankAgentRegistration | Profile,
    action: Action,
) -> None:
    """Raise AuthorizationError unless ``actor`` may perform ``action`` on ``resource``."""
    if not has_capability(actor, resource, action):
        logger.warning(
            "Capability denied: user=%s role=%s action=%s resource=%r",
            actor.user_id,
            actor.role.value,
            action.value,
            resource,
        )
        raise AuthorizationError("You are not allowed to perform this action")
