from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from dataclasses import dataclass, field
from datetime import datetime
from typing import TypeVar

from app.services.delivery_classifier import select_primary_product
from app.services.inventory_store import (
    InventoryStore,
    MovementRow,
    OrderItemRow,
    OrderRow,
    ProductRow,
    TransactionRow,
)
from app.services.record_normalizer import group_items_by_order

logger = logging.getLogger(__name__)

T = TypeVar('T')


class InventoryFetchError(RuntimeError):
    pass


@dataclass(frozen=True)
class RawInventorySnapshot:
    movements: list[MovementRow]
    transactions: list[TransactionRow]
    products: list[ProductRow]
    orders: list[OrderRow]
    order_items: list[OrderItemRow]
    degraded_sources: tuple[str, ...] = field(default=())


def distinct_ids(values) -> list[str]:
    return list(dict.fromkeys(value for value in values if value is not None))


async def fetch_physical_movements(
    store: InventoryStore,
    *,
    start_at: datetime | None = None,
    end_at: datetime | None = None,
) -> list[MovementRow]:
    try:
        return await store.query_physical_movements(start_at=start_at, end_at=end_at)
    except Exception as exc:
        raise InventoryFetchError(f'Inventory movement fetch failed: {exc}') from exc


async def fetch_accounting_transactions(
    store: InventoryStore,
    *,
    start_at: datetime | None = None,
    end_at: datetime | None = None,
    timeout_seconds: float | None = None,
    log: logging.Logger | None = None,
) -> list[TransactionRow] | None:
    """Return confirmed installment rows, or None when they could not be read."""
    return await _degraded(
        store.query_accounting_transactions(start_at=start_at, end_at=end_at),
        source='accounting_transactions',
        timeout_seconds=timeout_seconds,
        log=log,
    )


async def _degraded(
    awaitable: Awaitable[list[T]],
    *,
    source: str,
    timeout_seconds: float | None = None,
    log: logging.Logger | None = None,
) -> list[T] | None:
    log = log or logger
    try:
        if timeout_seconds is None:
            return await awaitable
        return await asyncio.wait_for(awaitable, timeout=timeout_seconds)
    except asyncio.TimeoutError:
        log.warning('Fetch of %s timed out after %ss; continuing without it', source, timeout_seconds)
    except Exception:
        log.warning('Fetch of %s failed; continuing without it', source, exc_info=True)
    return None


async def fetch_inventory_snapshot(
    store: InventoryStore,
    *,
    movements_end_at: datetime | None = None,
    transactions_start_at: datetime | None = None,
    transactions_end_at: datetime | None = None,
    accounting_timeout_seconds: float | None = None,
    log: logging.Logger | None = None,
) -> RawInventorySnapshot:
    """Read everything the unified view needs with one bulk query per table.

    Movements carry no lower bound so running balances start from the first
    movement ever recorded. Movements and installments are read concurrently;
    orders and order lines wait for the installment ids, products wait for
    both movement and order-line ids.
    """
    log = log or logger
    degraded: list[str] = []

    movements_result, transactions = await asyncio.gather(
        fetch_physical_movements(store, end_at=movements_end_at),
        fetch_accounting_transactions(
            store,
            start_at=transactions_start_at,
            end_at=transactions_end_at,
            timeout_seconds=accounting_timeout_seconds,
            log=log,
        ),
        return_exceptions=True,
    )
    if isinstance(movements_result, BaseException):
        raise movements_result
    if isinstance(transactions, BaseException):
        raise transactions
    movements: list[MovementRow] = movements_result
    if transactions is None:
        degraded.append('accounting_transactions')
        transactions = []

    order_ids = distinct_ids(row.parent_order_id for row in transactions)
    orders: list[OrderRow] = []
    order_items: list[OrderItemRow] = []
    if order_ids:
        orders_result, items_result = await asyncio.gather(
            _degraded(store.query_orders_by_ids(order_ids), source='purchase_orders', log=log),
            _degraded(store.query_order_items_by_order_ids(order_ids), source='purchase_order_items', log=log),
        )
        if orders_result is None:
            degraded.append('purchase_orders')
        else:
            orders = orders_result
        if items_result is None:
            degraded.append('purchase_order_items')
        else:
            order_items = items_result

    primary_product_ids = [
        primary.product_id
        for primary in (select_primary_product(items) for items in group_items_by_order(order_items).values())
        if primary is not None
    ]
    product_ids = distinct_ids([*(row.product_id for row in movements), *primary_product_ids])
    products: list[ProductRow] = []
    if product_ids:
        try:
            products = await store.query_products_by_ids(product_ids)
        except Exception as exc:
            raise InventoryFetchError(f'Product lookup failed: {exc}') from exc

    return RawInventorySnapshot(
        movements=movements,
        transactions=transactions,
        products=products,
        orders=orders,
        order_items=order_items,
        degraded_sources=tuple(degraded),
    )


async def fetch_order_installments(
    store: InventoryStore,
    order_ids: list[str],
) -> tuple[list[TransactionRow], list[OrderRow]]:
    """Return every confirmed installment of ``order_ids`` regardless of date, plus the orders."""
    if not order_ids:
        return [], []
    installments, orders = await asyncio.gather(
        store.query_accounting_transactions(order_ids=order_ids),
        store.query_orders_by_ids(order_ids),
        return_exceptions=True,
    )
    for outcome in (installments, orders):
        if isinstance(outcome, BaseException):
            raise InventoryFetchError(f'Order installment lookup failed: {outcome}') from outcome
    return installments, orders
