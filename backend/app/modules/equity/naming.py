"""
Naming of equity records.

Share holdings and grants are named in a per-company sequence, e.g. GUM-1,
GUM-2, ... The first name is built from the company name; every later name
increments the trailing number of the most recent one, so a renamed prefix
("GUMMY-7") carries forward ("GUMMY-8").
"""

import re
from typing import Optional

from sqlalchemy.orm import Session

from app.modules.companies.models import Company
from app.modules.equity.models import ShareHolding
from app.modules.users.models import User


TRAILING_NUMBER = re.compile(r"^(.*?)(\d+)$", re.DOTALL)

# Business entities registered here hold equity under their owner's legal name
LEGAL_NAME_COUNTRIES = {"IN"}


def split_trailing_number(name: str) -> tuple[str, int]:
    """Split "A1B-2" into ("A1B-", 2). Only the final run of digits is the number."""
    match = TRAILING_NUMBER.match(name)
    if match is None:
        raise ValueError(f"Name {name!r} does not end with a number")
    return match.group(1), int(match.group(2))


def next_name(company_name: str, preceding_name: Optional[str], prefix_length: int = 3) -> str:
    """
    Next name in a company's sequence.

    Args:
        company_name: Used for the prefix when the sequence is empty
        preceding_name: Name of the most recently created item, or None
        prefix_length: Number of company-name characters in a fresh prefix

    Examples:
        >>> next_name("Gummy Bears Inc", None)
        'GUM-1'
        >>> next_name("Gummy Bears Inc", "GUMMY-7")
        'GUMMY-8'
    """
    if preceding_name is None:
        return f"{company_name[:prefix_length].upper()}-1"

    prefix, number = split_trailing_number(preceding_name)
    return f"{prefix}{number + 1}"


def next_share_holding_name(db: Session, company: Company, prefix_length: int = 3) -> str:
    """
    Next share holding name for a company.

    Callers creating several holdings must flush between calls, and should hold
    a lock on the company row so concurrent writers don't read the same
    predecessor.
    """
    preceding = db.query(ShareHolding.name).filter(
        ShareHolding.company_id == company.id
    ).order_by(ShareHolding.id.desc()).first()

    return next_name(company.name, preceding[0] if preceding else None, prefix_length)


def option_holder_name(user: User) -> Optional[str]:
    """
    Name equity is held under: business name for business entities, except where legal name is required.

    Falls back to whichever name the user has; None when they have neither.
    """
    if not user.business_entity or (user.country_code or "").upper() in LEGAL_NAME_COUNTRIES:
        return user.legal_name or user.business_name
    return user.business_name or user.legal_name
