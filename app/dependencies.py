from datetime import date

from fastapi import HTTPException, Query

from app.db import SessionLocal
from app.services.inventory_store import InventoryStore
from app.services.provider_factory import get_inventory_store
from app.services.unified_filter import FilterSpec, validate_filter_spec


def inventory_store() -> InventoryStore:
    return get_inventory_store(SessionLocal)


def filter_spec(
    search_term: str | None = Query(default=None),
    record_type: str = Query(default='all'),
    movement_type: str = Query(default='all'),
    delivery_filter: str = Query(default='all'),
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    installment_no: str | None = Query(default=None),
    order_no: str | None = Query(default=None),
    sort_by: str = Query(default='created_at'),
    sort_order: str = Query(default='desc'),
) -> FilterSpec:
    spec = FilterSpec(
        search_term=search_term,
        record_type=record_type,
        movement_type=movement_type,
        delivery_filter=delivery_filter,
        start_date=start_date,
        end_date=end_date,
        installment_no=installment_no,
        order_no=order_no,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    try:
        validate_filter_spec(spec)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return spec
