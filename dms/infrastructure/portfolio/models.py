"""
SQLAlchemy ORM models for the portfolio database.

Table and column names follow the existing schema so that databases
created by earlier versions of the application remain readable.
"""

import datetime as dt
from datetime import date, datetime, timezone
from typing import Optional
from uuid import uuid4

from sqlalchemy import Boolean, Date, DateTime, Float, ForeignKey, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _new_id() -> str:
    return str(uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all ORM models."""


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_now, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=_now, onupdate=_now, nullable=False
    )


class SoftDeleteMixin(TimestampMixin):
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)


class AccountModel(SoftDeleteMixin, Base):
    __tablename__ = "accounts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    trades: Mapped[list["TradeModel"]] = relationship(back_populates="account")
    div_deposits: Mapped[list["DivDepositModel"]] = relationship(back_populates="account")


class RiskGroupModel(SoftDeleteMixin, Base):
    __tablename__ = "risk_group"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)


class UniverseModel(SoftDeleteMixin, Base):
    __tablename__ = "universe"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    symbol: Mapped[str] = mapped_column(String(32), unique=True, nullable=False, index=True)
    distribution: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    distributions_per_year: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_price: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    most_recent_sell_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    most_recent_sell_price: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    ex_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    risk_group_id: Mapped[str] = mapped_column(ForeignKey("risk_group.id"), nullable=False)
    expired: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_closed_end_fund: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    risk_group: Mapped[RiskGroupModel] = relationship()


class TradeModel(SoftDeleteMixin, Base):
    __tablename__ = "trades"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    universe_id: Mapped[str] = mapped_column(ForeignKey("universe.id"), nullable=False, index=True)
    account_id: Mapped[str] = mapped_column(ForeignKey("accounts.id"), nullable=False, index=True)
    buy: Mapped[float] = mapped_column(Float, nullable=False)
    sell: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    buy_date: Mapped[date] = mapped_column(Date, nullable=False)
    sell_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    quantity: Mapped[float] = mapped_column(Float, nullable=False)

    account: Mapped[AccountModel] = relationship(back_populates="trades")


class DivDepositTypeModel(SoftDeleteMixin, Base):
    __tablename__ = "div_deposit_types"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)


class DivDepositModel(SoftDeleteMixin, Base):
    __tablename__ = "div_deposits"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    account_id: Mapped[str] = mapped_column(ForeignKey("accounts.id"), nullable=False, index=True)
    div_deposit_type_id: Mapped[str] = mapped_column(
        ForeignKey("div_deposit_types.id"), nullable=False
    )
    universe_id: Mapped[Optional[str]] = mapped_column(ForeignKey("universe.id"), nullable=True)

    account: Mapped[AccountModel] = relationship(back_populates="div_deposits")


class ScreenerModel(TimestampMixin, Base):
    __tablename__ = "screener"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    symbol: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    risk_group_id: Mapped[str] = mapped_column(ForeignKey("risk_group.id"), nullable=False)
    has_volitility: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    objectives_understood: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    graph_higher_before_2008: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
