"""
Tests for the portfolio application layer.

Use cases run against the SQLAlchemy adapters on an in-memory SQLite
database; market data comes from an in-memory fake.
"""

from datetime import date
from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from dms.application.portfolio.add_symbol import AddSymbolUseCase
from dms.application.portfolio.dtos import (
    AddSymbolCommand,
    DivDepositCommand,
    UniverseQuery,
    UniverseSettingsCommand,
)
from dms.application.portfolio.get_summary import GetSummaryUseCase
from dms.application.portfolio.import_fidelity import FidelityImportService
from dms.application.portfolio.manage_div_deposits import ManageDivDepositsUseCase
from dms.application.portfolio.manage_trades import ManageTradesUseCase
from dms.application.portfolio.manage_universe import ManageUniverseUseCase
from dms.application.portfolio.refresh_universe import RefreshUniverseUseCase
from dms.application.portfolio.sync_universe import SyncUniverseFromScreenerUseCase
from dms.application.portfolio.update_universe_settings import (
    UpdateUniverseSettingsUseCase,
    parse_symbol_list,
)
from dms.domain.portfolio.entities import Distribution, Trade
from dms.domain.portfolio.errors import (
    AccountNotFoundError,
    DuplicateSymbolError,
    FeatureDisabledError,
    InvalidMonthError,
    OpenPositionsError,
    PersistenceError,
    RiskGroupNotFoundError,
)
from dms.domain.portfolio.ports import CusipResolverPort
from dms.infrastructure.portfolio.account_repository import AccountRepositoryAdapter
from dms.infrastructure.portfolio.div_deposit_repository import (
    DivDepositRepositoryAdapter,
    DivDepositTypeRepositoryAdapter,
)
from dms.infrastructure.portfolio.risk_group_repository import RiskGroupRepositoryAdapter
from dms.infrastructure.portfolio.screener_repository import ScreenerRepositoryAdapter
from dms.infrastructure.portfolio.trade_repository import TradeRepositoryAdapter
from dms.infrastructure.portfolio.universe_repository import UniverseRepositoryAdapter
from seed import (
    add_account,
    add_risk_group,
    add_screener_row,
    add_trade,
    add_universe,
)

TODAY = date(2024, 6, 30)
HEADER = "Run Date,Account,Action,Symbol,Description,Price ($),Quantity,Amount ($)"
EXPORT = "\n".join(
    [
        HEADER,
        "01/15/2024,Brokerage,YOU BOUGHT,PDI,PIMCO DYNAMIC,18.50,10,-185.00",
        "02/01/2024,Brokerage,DIVIDEND RECEIVED,PDI,PIMCO DYNAMIC,,0,1.85",
        "03/01/2024,Brokerage,ELECTRONIC FUNDS TRANSFER,,CASH,,0,500.00",
        "04/01/2024,Brokerage,YOU SOLD,PDI,PIMCO DYNAMIC,20.00,10,200.00",
        "04/02/2024,Brokerage,YOU SOLD,ZZZ,UNTRACKED FUND,5.00,2,10.00",
    ]
)


class StaticCusipResolver(CusipResolverPort):
    def __init__(self, tickers: dict[str, str]) -> None:
        self.tickers = tickers
        self.calls: list[list[str]] = []

    def resolve(self, cusips: list[str]) -> dict[str, str]:
        self.calls.append(cusips)
        return {c: self.tickers[c] for c in cusips if c in self.tickers}


def _locked_database() -> OperationalError:
    return OperationalError("INSERT INTO trades", {}, Exception("database is locked"))


class SecondAddFailsTradeRepository(TradeRepositoryAdapter):
    """Trade adapter whose second insert hits a database error."""

    def __init__(self, session) -> None:
        super().__init__(session)
        self.adds = 0

    def add(self, trade: Trade) -> Trade:
        self.adds += 1
        if self.adds != 2:
            return super().add(trade)
        with patch.object(self._session, "commit", side_effect=_locked_database()):
            return super().add(trade)


def _import_service(session, resolver=None, trade_repo=None) -> FidelityImportService:
    return FidelityImportService(
        account_repo=AccountRepositoryAdapter(session),
        universe_repo=UniverseRepositoryAdapter(session),
        risk_group_repo=RiskGroupRepositoryAdapter(session),
        trade_repo=trade_repo or TradeRepositoryAdapter(session),
        deposit_repo=DivDepositRepositoryAdapter(session),
        deposit_type_repo=DivDepositTypeRepositoryAdapter(session),
        cusip_resolver=resolver,
        today=lambda: TODAY,
    )


class TestFidelityImport:
    """Tests for FidelityImportService."""

    def test_full_export(self, session) -> None:
        """Purchases, sales and deposits land in an auto-created account."""
        result = _import_service(session).import_csv(EXPORT)

        assert result.success, result.errors
        assert result.imported == 5
        assert result.errors == []

        account = AccountRepositoryAdapter(session).find_by_name("Brokerage")
        assert account is not None
        pdi = UniverseRepositoryAdapter(session).find_by_symbol("PDI")
        assert pdi is not None
        assert RiskGroupRepositoryAdapter(session).get_by_id(pdi.risk_group_id).name == "Equities"
        assert UniverseRepositoryAdapter(session).find_by_symbol("ZZZ") is None

        (trade,) = TradeRepositoryAdapter(session).list_for_account(account.id)
        assert trade.buy == 18.5
        assert trade.sell == 20.0
        assert trade.sell_date == date(2024, 4, 1)

        deposits = DivDepositRepositoryAdapter(session).list_for_account(account.id)
        amounts = sorted(d.amount for d in deposits)
        assert amounts == [1.85, 10.0, 500.0]
        dividend = next(d for d in deposits if d.amount == 1.85)
        assert dividend.universe_id == pdi.id

    def test_reimport_is_idempotent_for_purchases_and_deposits(self, session) -> None:
        """Only the already closed sale is reported on a second import."""
        service = _import_service(session)
        service.import_csv(EXPORT)
        second = service.import_csv(EXPORT)

        assert not second.success
        assert len(second.errors) == 1
        assert second.errors[0].startswith("No matching open trade found for sale")

        account = AccountRepositoryAdapter(session).find_by_name("Brokerage")
        assert len(TradeRepositoryAdapter(session).list_for_account(account.id)) == 1
        assert len(DivDepositRepositoryAdapter(session).list_for_account(account.id)) == 3

    def test_invalid_rows_are_reported_and_valid_rows_kept(self, session) -> None:
        text = "\n".join(
            [
                HEADER,
                "13/45/2024,Brokerage,YOU BOUGHT,PDI,PIMCO,18.50,10,-185.00",
                "01/15/2024,Brokerage,YOU BOUGHT,ECC,EAGLE POINT,10.00,5,-50.00",
                "01/16/2024,Brokerage,REINVESTMENT,ECC,EAGLE POINT,10.00,1,-10.00",
            ]
        )
        result = _import_service(session).import_csv(text)

        assert not result.success
        assert result.imported == 1
        assert result.errors[0].startswith("Row 2: date:")
        assert any("REINVESTMENT" in w for w in result.warnings)

    def test_database_error_on_one_row_keeps_the_rest(self, session) -> None:
        """A failed insert is reported for its row; later rows still land."""
        text = "\n".join(
            [
                HEADER,
                "01/15/2024,Brokerage,YOU BOUGHT,PDI,PIMCO DYNAMIC,18.50,10,-185.00",
                "01/16/2024,Brokerage,YOU BOUGHT,ECC,EAGLE POINT,10.00,5,-50.00",
                "03/01/2024,Brokerage,ELECTRONIC FUNDS TRANSFER,,CASH,,0,500.00",
            ]
        )
        failing_repo = SecondAddFailsTradeRepository(session)

        result = _import_service(session, trade_repo=failing_repo).import_csv(text)

        assert not result.success
        assert result.imported == 2
        assert result.errors == [
            "Row 3: Failed to import purchase: Database error while saving trade"
        ]
        account = AccountRepositoryAdapter(session).find_by_name("Brokerage")
        (trade,) = TradeRepositoryAdapter(session).list_for_account(account.id)
        assert trade.buy == 18.5
        (deposit,) = DivDepositRepositoryAdapter(session).list_for_account(account.id)
        assert deposit.amount == 500.0

    def test_failed_commit_rolls_back_and_raises_domain_error(self) -> None:
        session = MagicMock()
        session.commit.side_effect = _locked_database()
        trade = Trade(
            id="t1", universe_id="u1", account_id="a1", buy=1.0, sell=0.0,
            buy_date=date(2024, 1, 2), quantity=1.0,
        )

        with pytest.raises(PersistenceError, match="saving trade"):
            TradeRepositoryAdapter(session).add(trade)
        session.rollback.assert_called_once()

    def test_unparseable_file(self, session) -> None:
        result = _import_service(session).import_csv("Foo,Bar\n1,2")
        assert not result.success
        assert result.imported == 0
        assert result.errors[0].startswith("Invalid CSV header")

    def test_header_only_file(self, session) -> None:
        result = _import_service(session).import_csv(HEADER)
        assert result.success
        assert result.imported == 0

    def test_cusips_are_translated(self, session) -> None:
        """A CUSIP symbol is replaced by the ticker the resolver returns."""
        resolver = StaticCusipResolver({"037833100": "AAPL"})
        text = f"{HEADER}\n01/15/2024,Brokerage,YOU BOUGHT,037833100,APPLE,100.00,1,-100.00"

        result = _import_service(session, resolver).import_csv(text)

        assert result.success
        assert resolver.calls == [["037833100"]]
        assert UniverseRepositoryAdapter(session).find_by_symbol("AAPL") is not None


class TestSyncUniverse:
    """Tests for SyncUniverseFromScreenerUseCase."""

    def _use_case(self, session, market_data, enabled: bool = True):
        return SyncUniverseFromScreenerUseCase(
            screener_repo=ScreenerRepositoryAdapter(session),
            universe_repo=UniverseRepositoryAdapter(session),
            market_data=market_data,
            enabled=enabled,
            today=lambda: TODAY,
        )

    def test_disabled(self, session, market_data) -> None:
        with pytest.raises(FeatureDisabledError):
            self._use_case(session, market_data, enabled=False).execute("cid")

    def test_inserts_updates_and_expires(self, session, market_data) -> None:
        """Qualified rows are upserted and everything else expires."""
        income = add_risk_group(session, "Income")
        equities = add_risk_group(session, "Equities")
        add_screener_row(session, "PDI", income.id)
        add_screener_row(session, "RIV", income.id)
        add_screener_row(session, "ECC", income.id, qualified=False)
        add_universe(session, "RIV", equities.id, expired=True)
        add_universe(session, "OXLC", equities.id)
        market_data.prices = {"PDI": 19.0, "RIV": 12.0}
        market_data.distributions = {
            "PDI": Distribution(distribution=0.22, ex_date=date(2024, 7, 10), distributions_per_year=12)
        }

        summary = self._use_case(session, market_data).execute("cid-1")

        assert (summary.inserted, summary.updated, summary.marked_expired) == (1, 1, 1)
        assert summary.selected_count == 2
        assert summary.correlation_id == "cid-1"

        repo = UniverseRepositoryAdapter(session)
        pdi = repo.find_by_symbol("PDI")
        assert pdi.last_price == 19.0
        assert pdi.ex_date == date(2024, 7, 10)
        assert pdi.distributions_per_year == 12
        riv = repo.find_by_symbol("RIV")
        assert riv.risk_group_id == income.id
        assert not riv.expired
        assert repo.find_by_symbol("OXLC").expired
        assert repo.find_by_symbol("ECC") is None

    def test_failing_symbol_is_counted(self, session, market_data) -> None:
        """One broken lookup does not stop the run."""
        income = add_risk_group(session, "Income")
        add_screener_row(session, "PDI", income.id)
        add_screener_row(session, "RIV", income.id)
        market_data.failing = {"PDI"}

        summary = self._use_case(session, market_data).execute()

        assert summary.failed == 1
        assert summary.inserted == 1
        assert summary.correlation_id


class TestUniverseSettings:
    """Tests for UpdateUniverseSettingsUseCase."""

    def test_parse_symbol_list(self) -> None:
        assert parse_symbol_list("PDI\n\n  ECC \r\nRIV") == ["PDI", "ECC", "RIV"]
        assert parse_symbol_list("") == []

    def test_assigns_groups_and_expires_unlisted_funds(self, session, market_data) -> None:
        old = add_risk_group(session, "Old")
        add_universe(
            session, "PDI", old.id, expired=True, most_recent_sell_date=date(2024, 1, 1)
        )
        add_universe(session, "OXLC", old.id)
        add_universe(session, "ABC", old.id, is_closed_end_fund=False)
        market_data.prices = {"SPY": 500.0}

        result = UpdateUniverseSettingsUseCase(
            risk_group_repo=RiskGroupRepositoryAdapter(session),
            universe_repo=UniverseRepositoryAdapter(session),
            market_data=market_data,
            today=lambda: TODAY,
        ).execute(UniverseSettingsCommand(equities=["SPY"], income=["PDI"], tax_free_income=[]))

        assert (result.added, result.updated, result.marked_expired) == (1, 1, 1)
        groups = {g.name: g.id for g in RiskGroupRepositoryAdapter(session).list_all()}
        assert {"Equities", "Income", "Tax Free Income"} <= set(groups)

        repo = UniverseRepositoryAdapter(session)
        pdi = repo.find_by_symbol("PDI")
        assert pdi.risk_group_id == groups["Income"]
        assert not pdi.expired
        assert pdi.most_recent_sell_date is None
        assert repo.find_by_symbol("SPY").last_price == 500.0
        assert repo.find_by_symbol("OXLC").expired
        assert not repo.find_by_symbol("ABC").expired


class TestRefreshUniverse:
    """Tests for RefreshUniverseUseCase."""

    def test_prices_and_passed_distributions(self, session, market_data) -> None:
        """Distributions are only replaced once the stored ex-date has passed."""
        group = add_risk_group(session)
        add_universe(session, "NEW", group.id)
        add_universe(session, "FUT", group.id, ex_date=date(2024, 7, 15), distribution=0.1)
        add_universe(session, "OLD", group.id, ex_date=date(2024, 6, 1), distribution=0.1)
        market_data.prices = {"NEW": 10.0, "FUT": 11.0, "OLD": 12.0}
        later = Distribution(distribution=0.3, ex_date=date(2024, 7, 1), distributions_per_year=12)
        market_data.distributions = {
            "NEW": later,
            "FUT": later,
            "OLD": Distribution(distribution=0.2, ex_date=date(2024, 5, 1), distributions_per_year=12),
        }

        result = RefreshUniverseUseCase(
            universe_repo=UniverseRepositoryAdapter(session),
            market_data=market_data,
            today=lambda: TODAY,
        ).execute()

        assert result.prices_updated == 3
        assert result.distributions_updated == 1
        repo = UniverseRepositoryAdapter(session)
        assert repo.find_by_symbol("NEW").distribution == 0.3
        assert repo.find_by_symbol("FUT").distribution == 0.1
        assert repo.find_by_symbol("OLD").distribution == 0.1
        assert repo.find_by_symbol("OLD").last_price == 12.0


class TestAddSymbol:
    """Tests for AddSymbolUseCase."""

    def _use_case(self, session, market_data) -> AddSymbolUseCase:
        return AddSymbolUseCase(
            universe_repo=UniverseRepositoryAdapter(session),
            risk_group_repo=RiskGroupRepositoryAdapter(session),
            market_data=market_data,
            today=lambda: TODAY,
        )

    def test_symbol_is_normalised_and_populated(self, session, market_data) -> None:
        group = add_risk_group(session)
        market_data.prices = {"PDI": 19.5}
        market_data.distributions = {
            "PDI": Distribution(distribution=0.22, ex_date=date(2024, 7, 15), distributions_per_year=12)
        }

        universe = self._use_case(session, market_data).execute(
            AddSymbolCommand(symbol=" pdi ", risk_group_id=group.id)
        )

        assert universe.symbol == "PDI"
        assert universe.last_price == 19.5
        assert universe.ex_date == date(2024, 7, 15)

    def test_past_ex_date_is_not_stored(self, session, market_data) -> None:
        group = add_risk_group(session)
        market_data.distributions = {
            "PDI": Distribution(distribution=0.22, ex_date=date(2024, 6, 1), distributions_per_year=12)
        }
        universe = self._use_case(session, market_data).execute(
            AddSymbolCommand(symbol="PDI", risk_group_id=group.id)
        )
        assert universe.ex_date is None
        assert universe.distribution == 0.22
        assert universe.last_price == 0.0

    def test_duplicate(self, session, market_data) -> None:
        group = add_risk_group(session)
        add_universe(session, "PDI", group.id)
        with pytest.raises(DuplicateSymbolError):
            self._use_case(session, market_data).execute(
                AddSymbolCommand(symbol="PDI", risk_group_id=group.id)
            )

    def test_unknown_risk_group(self, session, market_data) -> None:
        with pytest.raises(RiskGroupNotFoundError):
            self._use_case(session, market_data).execute(
                AddSymbolCommand(symbol="PDI", risk_group_id="missing")
            )


class TestManageUniverse:
    """Tests for ManageUniverseUseCase."""

    def _use_case(self, session) -> ManageUniverseUseCase:
        return ManageUniverseUseCase(
            universe_repo=UniverseRepositoryAdapter(session),
            risk_group_repo=RiskGroupRepositoryAdapter(session),
            trade_repo=TradeRepositoryAdapter(session),
        )

    def test_positions_and_expired_rows(self, session) -> None:
        """Expired rows only show while held; positions can be per account."""
        group = add_risk_group(session, "Income")
        first = add_account(session, "First")
        second = add_account(session, "Second")
        pdi = add_universe(session, "PDI", group.id, last_price=20.0, distribution=0.2,
                           distributions_per_year=12)
        ecc = add_universe(session, "ECC", group.id, expired=True)
        add_universe(session, "OXLC", group.id, expired=True)
        add_trade(session, first.id, pdi.id, buy=10.0, quantity=10.0)
        add_trade(session, second.id, pdi.id, buy=10.0, quantity=5.0)
        add_trade(session, first.id, ecc.id, buy=8.0, quantity=1.0)

        rows = self._use_case(session).list_universe(UniverseQuery(sort="symbol"))
        assert [r["symbol"] for r in rows] == ["ECC", "PDI"]
        by_symbol = {r["symbol"]: r for r in rows}
        assert by_symbol["PDI"]["position"] == 150.0
        assert by_symbol["PDI"]["risk_group"] == "Income"
        assert by_symbol["PDI"]["yield_percent"] == pytest.approx(12.0)

        rows = self._use_case(session).list_universe(
            UniverseQuery(account_id=second.id, expired=False)
        )
        assert [(r["symbol"], r["position"]) for r in rows] == [("PDI", 50.0)]

    def test_delete_refused_while_held(self, session) -> None:
        group = add_risk_group(session)
        account = add_account(session)
        pdi = add_universe(session, "PDI", group.id)
        add_trade(session, account.id, pdi.id)

        with pytest.raises(OpenPositionsError):
            self._use_case(session).delete(pdi.id)

    def test_deleted_symbol_can_be_added_again(self, session) -> None:
        group = add_risk_group(session)
        pdi = add_universe(session, "PDI", group.id)
        self._use_case(session).delete(pdi.id)

        repo = UniverseRepositoryAdapter(session)
        assert repo.find_by_symbol("PDI") is None
        revived = add_universe(session, "PDI", group.id)
        assert revived.id == pdi.id


class TestTradesAndDeposits:
    """Tests for trade and deposit management."""

    def test_sold_trade_reports_gain(self, session) -> None:
        group = add_risk_group(session)
        account = add_account(session)
        pdi = add_universe(session, "PDI", group.id)
        add_trade(session, account.id, pdi.id, buy=18.5, quantity=10.0)
        add_trade(session, account.id, pdi.id, buy=18.5, quantity=10.0, sell=20.0,
                  sell_date=date(2024, 4, 1))
        use_case = ManageTradesUseCase(
            trade_repo=TradeRepositoryAdapter(session),
            account_repo=AccountRepositoryAdapter(session),
            universe_repo=UniverseRepositoryAdapter(session),
        )

        (sold,) = use_case.list_trades(account.id, "sold")
        assert sold.symbol == "PDI"
        assert sold.capital_gain == pytest.approx(15.0)
        assert sold.capital_gain_display == "$15.00"
        assert sold.capital_gain_percentage == "8.11%"
        assert sold.gain_class == "gain"

        (still_open,) = use_case.list_trades(account.id, "open")
        assert still_open.capital_gain is None

    def test_sold_trade_keeps_symbol_after_delete(self, session) -> None:
        group = add_risk_group(session)
        account = add_account(session)
        ecc = add_universe(session, "ECC", group.id)
        add_trade(session, account.id, ecc.id, sell=12.0, sell_date=date(2024, 2, 1))
        UniverseRepositoryAdapter(session).delete(ecc.id)
        use_case = ManageTradesUseCase(
            trade_repo=TradeRepositoryAdapter(session),
            account_repo=AccountRepositoryAdapter(session),
            universe_repo=UniverseRepositoryAdapter(session),
        )

        (sold,) = use_case.list_trades(account.id, "sold")
        assert sold.symbol == "ECC"

    def test_deposit_type_defaults_by_symbol(self, session) -> None:
        group = add_risk_group(session)
        account = add_account(session)
        pdi = add_universe(session, "PDI", group.id)
        use_case = ManageDivDepositsUseCase(
            deposit_repo=DivDepositRepositoryAdapter(session),
            deposit_type_repo=DivDepositTypeRepositoryAdapter(session),
            account_repo=AccountRepositoryAdapter(session),
            universe_repo=UniverseRepositoryAdapter(session),
        )

        dividend = use_case.create(
            DivDepositCommand(account_id=account.id, date=date(2024, 2, 1), amount=1.85,
                              universe_id=pdi.id)
        )
        cash = use_case.create(
            DivDepositCommand(account_id=account.id, date=date(2024, 3, 1), amount=500.0)
        )

        types = DivDepositTypeRepositoryAdapter(session)
        assert dividend.symbol == "PDI"
        assert dividend.deposit.div_deposit_type_id == types.find_by_name("Dividend").id
        assert cash.deposit.div_deposit_type_id == types.find_by_name("Cash Deposit").id


class TestSummary:
    """Tests for GetSummaryUseCase."""

    def _use_case(self, session) -> GetSummaryUseCase:
        return GetSummaryUseCase(
            account_repo=AccountRepositoryAdapter(session),
            trade_repo=TradeRepositoryAdapter(session),
            deposit_repo=DivDepositRepositoryAdapter(session),
            universe_repo=UniverseRepositoryAdapter(session),
            risk_group_repo=RiskGroupRepositoryAdapter(session),
        )

    def test_month_is_checked_before_account(self, session) -> None:
        with pytest.raises(InvalidMonthError):
            self._use_case(session).summary("missing", "2024-13")

    def test_unknown_account(self, session) -> None:
        with pytest.raises(AccountNotFoundError):
            self._use_case(session).summary("missing", "2024-03")

    def test_imported_account(self, session) -> None:
        """Figures of an imported export add up per month."""
        _import_service(session).import_csv(EXPORT)
        account = AccountRepositoryAdapter(session).find_by_name("Brokerage")
        use_case = self._use_case(session)

        april = use_case.summary(account.id, "2024-04")
        assert april.capital_gains == pytest.approx(15.0)
        assert april.equities == pytest.approx(185.0)
        assert april.deposits == pytest.approx(511.85)
        assert april.dividends == 0.0

        assert [ref.key for ref in use_case.months(account.id)] == [
            "2024-04",
            "2024-03",
            "2024-02",
        ]
        assert use_case.years(account.id) == [2024]

    def test_deleted_symbol_still_counts_in_cost_basis(self, session) -> None:
        """A trade sold this month keeps its risk group after the symbol is deleted."""
        group = add_risk_group(session, "Income")
        account = add_account(session)
        pdi = add_universe(session, "PDI", group.id)
        add_trade(session, account.id, pdi.id, buy=18.5, quantity=10.0, sell=20.0,
                  sell_date=date(2024, 4, 1))
        assert UniverseRepositoryAdapter(session).delete(pdi.id)

        april = self._use_case(session).summary(account.id, "2024-04")

        assert april.income == pytest.approx(185.0)
        assert april.capital_gains == pytest.approx(15.0)
