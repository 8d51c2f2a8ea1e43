"""
Adapter: Risk group persistence.

Implements RiskGroupRepository port on top of a SQLAlchemy session.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from dms.domain.portfolio.entities import RiskGroup
from dms.domain.portfolio.ports import RiskGroupRepository
from dms.infrastructure.portfolio.models import RiskGroupModel


def _to_entity(row: RiskGroupModel) -> RiskGroup:
    return RiskGroup(id=row.id, name=row.name)


class RiskGroupRepositoryAdapter(RiskGroupRepository):
    """SQLAlchemy implementation of the risk group repository."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def _active(self):
        return select(RiskGroupModel).where(RiskGroupModel.deleted_at.is_(None))

    def list_all(self) -> list[RiskGroup]:
        rows = self._session.scalars(self._active().order_by(RiskGroupModel.name))
        return [_to_entity(row) for row in rows]

    def get_by_id(self, risk_group_id: str) -> Optional[RiskGroup]:
        row = self._session.scalars(
            self._active().where(RiskGroupModel.id == risk_group_id)
        ).first()
        return _to_entity(row) if row else None

    def find_by_name(self, name: str) -> Optional[RiskGroup]:
        row = self._session.scalars(
            self._active().where(RiskGroupModel.name == name)
        ).first()
        return _to_entity(row) if row else None

    def add(self, risk_group: RiskGroup) -> RiskGroup:
        self._session.add(RiskGroupModel(id=risk_group.id, name=risk_group.name))
        self._session.commit()
        return risk_group
