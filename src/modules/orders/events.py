"""Domain events for the Orders bounded context."""

from __future__ import annotations

from dataclasses import dataclass

from shared.domain.events import DomainEvent


@dataclass(frozen=True, kw_only=True)
class OrderCreated(DomainEvent):
    """Raised when an order is created."""

    ref: str = ""
    total: str = "0"
    contact_message: str = ""


@dataclass(frozen=True, kw_only=True)
class OrderStatusChanged(DomainEvent):
    """Raised on every applied status transition."""

    ref: str = ""
    old_status: str = ""
    new_status: str = ""
    changed_by: str = ""


@dataclass(frozen=True, kw_only=True)
class OrderPaid(OrderStatusChanged):
    """Raised when an order is paid and its stock deducted."""


@dataclass(frozen=True, kw_only=True)
class OrderCancelled(OrderStatusChanged):
    """Raised when an order is cancelled."""

    stock_restored: bool = False


@dataclass(frozen=True, kw_only=True)
class OrderAmountsChanged(DomainEvent):
    """Raised when shipping fee or discount changes the total."""

    ref: str = ""
    shipping_fee: str = "0"
    discount: str = "0"
    total: str = "0"
