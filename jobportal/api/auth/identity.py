"""
Identity Types

Roles and the verified identity carried by a credential.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Set, Union


class Role(str, Enum):
    """Closed set of platform roles."""

    JOB_SEEKER = "job-seeker"
    RECRUITER = "recruiter"
    ADMIN = "admin"


def parse_role(value: Union[Role, str]) -> Role:
    """
    Convert a role value to a Role member.

    Raises:
        ValueError: If the value is not one of the known roles
    """
    if isinstance(value, Role):
        return value
    return Role(value)


def parse_roles(values: Iterable[Union[Role, str]]) -> Set[Role]:
    """Convert an iterable of role values to a set of Role members."""
    return {parse_role(v) for v in values}


@dataclass(frozen=True)
class Identity:
    """Verified identity of a caller."""

    user_id: str
    email: str
    role: Role
