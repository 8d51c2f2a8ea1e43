"""
Use cases: list screener rows and toggle their qualification flags.
"""

from dataclasses import replace
from typing import Optional

from dms.domain.portfolio.entities import ScreenerRow
from dms.domain.portfolio.errors import ScreenerRowNotFoundError
from dms.domain.portfolio.ports import ScreenerRepository


class ManageScreenerUseCase:
    def __init__(self, screener_repo: ScreenerRepository) -> None:
        self._screener_repo = screener_repo

    def list_rows(self) -> list[ScreenerRow]:
        return self._screener_repo.list_all()

    def set_flags(
        self,
        row_id: str,
        has_volitility: Optional[bool] = None,
        objectives_understood: Optional[bool] = None,
        graph_higher_before_2008: Optional[bool] = None,
    ) -> ScreenerRow:
        """Update the given flags; None leaves a flag unchanged."""
        row = self._screener_repo.get_by_id(row_id)
        if row is None:
            raise ScreenerRowNotFoundError(row_id)
        changes = {
            name: value
            for name, value in (
                ("has_volitility", has_volitility),
                ("objectives_understood", objectives_understood),
                ("graph_higher_before_2008", graph_higher_before_2008),
            )
            if value is not None
        }
        return self._screener_repo.update(replace(row, **changes))
