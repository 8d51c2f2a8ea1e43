"""
Helpers shared by use cases that assign symbols to risk groups.
"""

import logging
from uuid import uuid4

from dms.domain.portfolio.entities import RiskGroup
from dms.domain.portfolio.ports import RiskGroupRepository
from dms.domain.portfolio.summary import EQUITIES, INCOME, TAX_FREE_INCOME

logger = logging.getLogger(__name__)

STANDARD_RISK_GROUPS = (EQUITIES, INCOME, TAX_FREE_INCOME)


def ensure_risk_group(repo: RiskGroupRepository, name: str) -> RiskGroup:
    """Return the risk group called ``name``, creating it when missing."""
    existing = repo.find_by_name(name)
    if existing is not None:
        return existing
    logger.info("Creating risk group %s", name)
    return repo.add(RiskGroup(id=str(uuid4()), name=name))


def ensure_standard_risk_groups(repo: RiskGroupRepository) -> dict[str, RiskGroup]:
    """Make sure Equities, Income and Tax Free Income exist, in that order."""
    return {name: ensure_risk_group(repo, name) for name in STANDARD_RISK_GROUPS}
