"""
Use case: Import a Fidelity transaction export.

Input:  raw CSV text
Output: ImportResult
Side effects: Creates accounts, universe symbols, deposit types, trades
              and deposits; closes open trades on sales.
Failure cases: reported inside the result, never raised. A database error
               on one row is recorded and the remaining rows still run.
"""

import logging
from dataclasses import replace
from datetime import date, datetime
from typing import Callable, Optional
from uuid import uuid4

from dms.application.portfolio.dtos import (
    ImportResult,
    MappedDivDeposit,
    MappedSale,
    MappedTrade,
    MappedTransaction,
    UnknownTransaction,
)
from dms.application.portfolio.risk_groups import ensure_risk_group
from dms.domain.portfolio.cusip import is_cusip
from dms.domain.portfolio.entities import (
    Account,
    DivDeposit,
    DivDepositType,
    Trade,
    TransactionType,
    Universe,
)
from dms.domain.portfolio.errors import (
    CsvFormatError,
    ImportValidationError,
    PersistenceError,
)
from dms.domain.portfolio.fidelity_csv import FidelityCsvRow, parse_fidelity_csv
from dms.domain.portfolio.import_validation import validate_rows
from dms.domain.portfolio.ports import (
    AccountRepository,
    CusipResolverPort,
    DivDepositRepository,
    DivDepositTypeRepository,
    RiskGroupRepository,
    TradeRepository,
    UniverseRepository,
)
from dms.domain.portfolio.summary import EQUITIES

logger = logging.getLogger(__name__)

DIVIDEND_TYPE = "Dividend"
CASH_DEPOSIT_TYPE = "Cash Deposit"
FIRST_DATA_ROW = 2


def resolve_cusip_symbols(
    rows: list[FidelityCsvRow], resolver: CusipResolverPort
) -> list[FidelityCsvRow]:
    """Replace CUSIP symbols by their ticker when the resolver knows them.

    Unresolved CUSIPs keep their original value.
    """
    cusips = sorted({row.symbol for row in rows if is_cusip(row.symbol)})
    if not cusips:
        return rows
    tickers = resolver.resolve(cusips)
    return [
        replace(row, symbol=tickers[row.symbol]) if row.symbol in tickers else row
        for row in rows
    ]


def _parse_date(value: str, row: int) -> date:
    try:
        return datetime.strptime(value, "%m/%d/%Y").date()
    except ValueError as exc:
        raise ImportValidationError(f'Row {row}: invalid date "{value}"') from exc


class FidelityTransactionMapper:
    """Turns validated rows into transactions bound to database ids.

    Accounts, universe symbols and deposit types that do not exist yet are
    created on first use and cached for the rest of the import.
    """

    def __init__(
        self,
        account_repo: AccountRepository,
        universe_repo: UniverseRepository,
        risk_group_repo: RiskGroupRepository,
        deposit_type_repo: DivDepositTypeRepository,
    ) -> None:
        self._account_repo = account_repo
        self._universe_repo = universe_repo
        self._risk_group_repo = risk_group_repo
        self._deposit_type_repo = deposit_type_repo
        self._accounts: dict[str, str] = {}
        self._deposit_types: dict[str, str] = {}

    def _account_id(self, name: str) -> str:
        key = name.lower()
        if key not in self._accounts:
            account = self._account_repo.find_by_name(name)
            if account is None:
                logger.info("Creating account %s", name)
                account = self._account_repo.add(Account(id=str(uuid4()), name=name))
            self._accounts[key] = account.id
        return self._accounts[key]

    def _deposit_type_id(self, name: str) -> str:
        if name not in self._deposit_types:
            deposit_type = self._deposit_type_repo.find_by_name(name)
            if deposit_type is None:
                deposit_type = self._deposit_type_repo.add(
                    DivDepositType(id=str(uuid4()), name=name)
                )
            self._deposit_types[name] = deposit_type.id
        return self._deposit_types[name]

    def _universe_id(self, symbol: str, create: bool) -> Optional[str]:
        universe = self._universe_repo.find_by_symbol(symbol)
        if universe is not None:
            return universe.id
        if not create:
            return None
        risk_group = ensure_risk_group(self._risk_group_repo, EQUITIES)
        logger.info("Adding %s to the universe", symbol)
        universe = self._universe_repo.add(
            Universe(id=str(uuid4()), symbol=symbol, risk_group_id=risk_group.id)
        )
        return universe.id

    def map_row(self, row_number: int, row: FidelityCsvRow) -> MappedTransaction:
        """Map one row.

        Raises:
            ImportValidationError: If the date or quantity cannot be used.
        """
        try:
            tx_type = TransactionType(row.action)
        except ValueError:
            return UnknownTransaction(
                row=row_number, action=row.action, symbol=row.symbol, date=row.date
            )

        when = _parse_date(row.date, row_number)
        account_id = self._account_id(row.account)

        if tx_type is TransactionType.PURCHASE:
            if row.quantity <= 0:
                raise ImportValidationError(
                    f"Row {row_number}: quantity must be positive for purchases"
                )
            return MappedTrade(
                row=row_number,
                universe_id=self._universe_id(row.symbol, create=True),
                account_id=account_id,
                buy=row.price,
                buy_date=when,
                quantity=row.quantity,
            )

        if tx_type is TransactionType.SALE:
            universe_id = self._universe_id(row.symbol, create=False)
            if universe_id is None:
                # Proceeds of a symbol we never tracked land as cash.
                return MappedDivDeposit(
                    row=row_number,
                    account_id=account_id,
                    date=when,
                    amount=abs(row.total_amount),
                    div_deposit_type_id=self._deposit_type_id(CASH_DEPOSIT_TYPE),
                )
            return MappedSale(
                row=row_number,
                universe_id=universe_id,
                account_id=account_id,
                sell=row.price,
                sell_date=when,
                quantity=abs(row.quantity),
            )

        if tx_type is TransactionType.DIVIDEND:
            return MappedDivDeposit(
                row=row_number,
                account_id=account_id,
                date=when,
                amount=row.total_amount,
                div_deposit_type_id=self._deposit_type_id(DIVIDEND_TYPE),
                universe_id=self._universe_id(row.symbol, create=True),
            )

        return MappedDivDeposit(
            row=row_number,
            account_id=account_id,
            date=when,
            amount=row.total_amount,
            div_deposit_type_id=self._deposit_type_id(CASH_DEPOSIT_TYPE),
        )

    def map(self, rows: list[tuple[int, FidelityCsvRow]]) -> list[MappedTransaction]:
        return [self.map_row(row_number, row) for row_number, row in rows]


class FidelityImportService:
    """Orchestrates parse, validate, map and persist for one CSV file.

    Persistence is sequential: purchases first, then sales, then deposits,
    so that a sale in the same file can close a purchase from that file.
    Purchases and deposits that are already stored are skipped.
    """

    def __init__(
        self,
        account_repo: AccountRepository,
        universe_repo: UniverseRepository,
        risk_group_repo: RiskGroupRepository,
        trade_repo: TradeRepository,
        deposit_repo: DivDepositRepository,
        deposit_type_repo: DivDepositTypeRepository,
        cusip_resolver: Optional[CusipResolverPort] = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._account_repo = account_repo
        self._universe_repo = universe_repo
        self._risk_group_repo = risk_group_repo
        self._trade_repo = trade_repo
        self._deposit_repo = deposit_repo
        self._deposit_type_repo = deposit_type_repo
        self._cusip_resolver = cusip_resolver
        self._today = today

    def import_csv(self, text: str) -> ImportResult:
        """Import every valid transaction of ``text``.

        Args:
            text: Full content of a Fidelity CSV export.

        Returns:
            The import result. ``success`` is False when the file could not
            be parsed, a row failed validation, a sale had no open trade
            or the database rejected a row.
        """
        try:
            rows = parse_fidelity_csv(text)
        except CsvFormatError as exc:
            logger.warning("Fidelity import rejected: %s", exc.message)
            return ImportResult(success=False, imported=0, errors=[exc.message])

        if not rows:
            return ImportResult(success=True, imported=0)

        if self._cusip_resolver is not None:
            rows = resolve_cusip_symbols(rows, self._cusip_resolver)

        report = validate_rows(rows, start=FIRST_DATA_ROW, today=self._today())
        errors = [
            str(error)
            for row_number in sorted(report.errors_by_row)
            for error in report.errors_by_row[row_number]
        ]
        warnings = [str(warning) for warning in report.warnings]

        mapper = FidelityTransactionMapper(
            self._account_repo,
            self._universe_repo,
            self._risk_group_repo,
            self._deposit_type_repo,
        )
        try:
            mapped = mapper.map(report.valid_rows)
        except ImportValidationError as exc:
            return ImportResult(
                success=False, imported=0, errors=errors + [exc.message], warnings=warnings
            )

        imported = 0
        for item in mapped:
            if isinstance(item, UnknownTransaction):
                warnings.append(
                    f'Unknown transaction type "{item.action}" for symbol '
                    f"{item.symbol} on {item.date}"
                )
        stages = (
            (MappedTrade, "purchase", self._store_purchase),
            (MappedSale, "sale", self._store_sale),
            (MappedDivDeposit, "deposit", self._store_deposit),
        )
        for item_type, kind, store in stages:
            for item in mapped:
                if not isinstance(item, item_type):
                    continue
                error = self._persist(item, kind, store)
                if error is None:
                    imported += 1
                else:
                    errors.append(error)

        logger.info(
            "Fidelity import finished: rows=%d, imported=%d, errors=%d, warnings=%d",
            len(rows),
            imported,
            len(errors),
            len(warnings),
        )
        return ImportResult(
            success=not errors, imported=imported, errors=errors, warnings=warnings
        )

    def _persist(self, item, kind: str, store: Callable) -> Optional[str]:
        """Store one row; a database failure becomes that row's error."""
        try:
            return store(item)
        except PersistenceError as exc:
            logger.error("Row %d: failed to import %s: %s", item.row, kind, exc.message)
            return f"Row {item.row}: Failed to import {kind}: {exc.message}"

    def _store_purchase(self, trade: MappedTrade) -> None:
        existing = self._trade_repo.find_purchase(
            trade.universe_id, trade.account_id, trade.buy, trade.buy_date, trade.quantity
        )
        if existing is not None:
            return
        self._trade_repo.add(
            Trade(
                id=str(uuid4()),
                universe_id=trade.universe_id,
                account_id=trade.account_id,
                buy=trade.buy,
                sell=trade.sell,
                buy_date=trade.buy_date,
                quantity=trade.quantity,
            )
        )

    def _store_sale(self, sale: MappedSale) -> Optional[str]:
        open_trade = self._trade_repo.find_open_trade(
            sale.universe_id, sale.account_id, sale.quantity
        )
        if open_trade is None:
            return (
                f"No matching open trade found for sale: account={sale.account_id}, "
                f"universe={sale.universe_id}, quantity={sale.quantity}"
            )
        self._trade_repo.update(
            replace(open_trade, sell=sale.sell, sell_date=sale.sell_date)
        )
        return None

    def _store_deposit(self, deposit: MappedDivDeposit) -> None:
        candidate = DivDeposit(
            id=str(uuid4()),
            date=deposit.date,
            amount=deposit.amount,
            account_id=deposit.account_id,
            div_deposit_type_id=deposit.div_deposit_type_id,
            universe_id=deposit.universe_id,
        )
        if self._deposit_repo.find_matching(candidate) is not None:
            return
        self._deposit_repo.add(candidate)
