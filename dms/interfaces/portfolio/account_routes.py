"""
FastAPI routes for accounts, trades and dividend deposits.

All routes delegate to use cases. No business logic here.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status

from dms.application.portfolio.dtos import (
    AccountView,
    DivDepositCommand,
    DivDepositView,
    TradeCommand,
    TradeView,
)
from dms.application.portfolio.manage_accounts import ManageAccountsUseCase
from dms.application.portfolio.manage_div_deposits import ManageDivDepositsUseCase
from dms.application.portfolio.manage_trades import ManageTradesUseCase
from dms.interfaces.portfolio.dependencies import (
    get_manage_accounts_use_case,
    get_manage_div_deposits_use_case,
    get_manage_trades_use_case,
)
from dms.interfaces.portfolio.schemas import (
    AccountItem,
    AccountMonthItem,
    AccountRequest,
    DivDepositItem,
    DivDepositRequest,
    ErrorResponse,
    TradeItem,
    TradeRequest,
)

router = APIRouter(tags=["accounts"])

NOT_FOUND = {404: {"model": ErrorResponse}}


def _account_item(view: AccountView) -> AccountItem:
    return AccountItem(
        id=view.id,
        name=view.name,
        trades=view.trades,
        div_deposits=view.div_deposits,
        months=[AccountMonthItem(**month) for month in view.months],
    )


def _trade_item(view: TradeView) -> TradeItem:
    trade = view.trade
    return TradeItem(
        id=trade.id,
        universe_id=trade.universe_id,
        account_id=trade.account_id,
        symbol=view.symbol,
        buy=trade.buy,
        sell=trade.sell,
        buy_date=trade.buy_date,
        sell_date=trade.sell_date,
        quantity=trade.quantity,
        capital_gain=view.capital_gain,
        capital_gain_percentage=view.capital_gain_percentage,
        capital_gain_display=view.capital_gain_display,
        gain_class=view.gain_class,
    )


def _deposit_item(view: DivDepositView) -> DivDepositItem:
    deposit = view.deposit
    return DivDepositItem(
        id=deposit.id,
        date=deposit.date,
        amount=deposit.amount,
        account_id=deposit.account_id,
        div_deposit_type_id=deposit.div_deposit_type_id,
        universe_id=deposit.universe_id,
        symbol=view.symbol,
    )


# ── Accounts ─────────────────────────────────────────────────────────


@router.get("/accounts", response_model=list[AccountItem], summary="List accounts")
def list_accounts(
    use_case: ManageAccountsUseCase = Depends(get_manage_accounts_use_case),
) -> list[AccountItem]:
    """Accounts with their trade ids, deposit ids and active months."""
    return [_account_item(view) for view in use_case.list_accounts()]


@router.get(
    "/accounts/{account_id}",
    response_model=AccountItem,
    responses=NOT_FOUND,
    summary="Get an account",
)
def get_account(
    account_id: str,
    use_case: ManageAccountsUseCase = Depends(get_manage_accounts_use_case),
) -> AccountItem:
    return _account_item(use_case.get(account_id))


@router.post(
    "/accounts",
    response_model=AccountItem,
    status_code=status.HTTP_201_CREATED,
    summary="Create an account",
)
def create_account(
    body: AccountRequest,
    use_case: ManageAccountsUseCase = Depends(get_manage_accounts_use_case),
) -> AccountItem:
    return _account_item(use_case.create(body.name))


@router.put(
    "/accounts/{account_id}",
    response_model=AccountItem,
    responses=NOT_FOUND,
    summary="Rename an account",
)
def rename_account(
    account_id: str,
    body: AccountRequest,
    use_case: ManageAccountsUseCase = Depends(get_manage_accounts_use_case),
) -> AccountItem:
    return _account_item(use_case.rename(account_id, body.name))


@router.delete(
    "/accounts/{account_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses=NOT_FOUND,
    summary="Delete an account",
)
def delete_account(
    account_id: str,
    use_case: ManageAccountsUseCase = Depends(get_manage_accounts_use_case),
) -> Response:
    use_case.delete(account_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ── Trades ───────────────────────────────────────────────────────────


@router.get(
    "/trades",
    response_model=list[TradeItem],
    responses=NOT_FOUND,
    summary="List trades of an account",
    description="``status=open`` lists open positions, ``status=sold`` sold ones.",
)
def list_trades(
    account_id: str,
    trade_status: Optional[str] = Query(
        default=None, alias="status", pattern=r"^(open|sold)$"
    ),
    use_case: ManageTradesUseCase = Depends(get_manage_trades_use_case),
) -> list[TradeItem]:
    return [_trade_item(view) for view in use_case.list_trades(account_id, trade_status)]


def _trade_command(body: TradeRequest) -> TradeCommand:
    return TradeCommand(**body.model_dump())


@router.post(
    "/trades",
    response_model=TradeItem,
    status_code=status.HTTP_201_CREATED,
    responses=NOT_FOUND,
    summary="Create a trade",
)
def create_trade(
    body: TradeRequest,
    use_case: ManageTradesUseCase = Depends(get_manage_trades_use_case),
) -> TradeItem:
    return _trade_item(use_case.create(_trade_command(body)))


@router.put(
    "/trades/{trade_id}",
    response_model=TradeItem,
    responses=NOT_FOUND,
    summary="Update a trade",
)
def update_trade(
    trade_id: str,
    body: TradeRequest,
    use_case: ManageTradesUseCase = Depends(get_manage_trades_use_case),
) -> TradeItem:
    return _trade_item(use_case.update(trade_id, _trade_command(body)))


@router.delete(
    "/trades/{trade_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses=NOT_FOUND,
    summary="Delete a trade",
)
def delete_trade(
    trade_id: str,
    use_case: ManageTradesUseCase = Depends(get_manage_trades_use_case),
) -> Response:
    use_case.delete(trade_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ── Dividend deposits ────────────────────────────────────────────────


@router.get(
    "/div-deposits",
    response_model=list[DivDepositItem],
    responses=NOT_FOUND,
    summary="List deposits of an account",
)
def list_div_deposits(
    account_id: str,
    use_case: ManageDivDepositsUseCase = Depends(get_manage_div_deposits_use_case),
) -> list[DivDepositItem]:
    return [_deposit_item(view) for view in use_case.list_deposits(account_id)]


@router.post(
    "/div-deposits",
    response_model=DivDepositItem,
    status_code=status.HTTP_201_CREATED,
    responses=NOT_FOUND,
    summary="Record a dividend or cash deposit",
)
def create_div_deposit(
    body: DivDepositRequest,
    use_case: ManageDivDepositsUseCase = Depends(get_manage_div_deposits_use_case),
) -> DivDepositItem:
    return _deposit_item(use_case.create(DivDepositCommand(**body.model_dump())))


@router.put(
    "/div-deposits/{deposit_id}",
    response_model=DivDepositItem,
    responses=NOT_FOUND,
    summary="Update a deposit",
)
def update_div_deposit(
    deposit_id: str,
    body: DivDepositRequest,
    use_case: ManageDivDepositsUseCase = Depends(get_manage_div_deposits_use_case),
) -> DivDepositItem:
    return _deposit_item(
        use_case.update(deposit_id, DivDepositCommand(**body.model_dump()))
    )


@router.delete(
    "/div-deposits/{deposit_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses=NOT_FOUND,
    summary="Delete a deposit",
)
def delete_div_deposit(
    deposit_id: str,
    use_case: ManageDivDepositsUseCase = Depends(get_manage_div_deposits_use_case),
) -> Response:
    use_case.delete(deposit_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
