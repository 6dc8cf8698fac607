from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException, Query

from app.dependencies import filter_spec, inventory_store
from app.services.integrity_validator import validate_integrity
from app.services.inventory_service import UnifiedInventoryResult, get_order_reconciliation, get_unified_inventory
from app.services.inventory_store import InventoryStore
from app.services.record_fetchers import InventoryFetchError
from app.services.running_stock import summarize_movements
from app.services.unified_filter import FilterSpec
from app.services.unified_records import UnifiedInventoryRecord, record_key

router = APIRouter(prefix='/inventory', tags=['inventory'])

PAGE_SIZE = 20


def record_to_dict(record: UnifiedInventoryRecord) -> dict:
    payload = asdict(record)
    payload['record_key'] = record_key(record)
    payload['record_type'] = record.record_type.value
    payload['source_system'] = record.source_system.value
    payload['physical_quantity'] = record.physical_quantity
    return payload


async def _load(store: InventoryStore, spec: FilterSpec) -> UnifiedInventoryResult:
    try:
        return await get_unified_inventory(store, spec)
    except InventoryFetchError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.get('/unified')
async def unified_inventory(
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=PAGE_SIZE, ge=1, le=500),
    spec: FilterSpec = Depends(filter_spec),
    store: InventoryStore = Depends(inventory_store),
):
    result = await _load(store, spec)
    page = result.records[offset : offset + limit]
    return {
        'records': [record_to_dict(record) for record in page],
        'total': len(result.records),
        'offset': offset,
        'limit': limit,
    }


@router.get('/integrity')
async def inventory_integrity(
    spec: FilterSpec = Depends(filter_spec),
    store: InventoryStore = Depends(inventory_store),
):
    result = await _load(store, spec)
    report = validate_integrity(result.records)
    try:
        orders = await get_order_reconciliation(store, result.records)
    except InventoryFetchError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return {
        'consistent': [record_to_dict(record) for record in report.consistent],
        'inconsistencies': [record_to_dict(record) for record in report.inconsistencies],
        'issues': {key: [issue.value for issue in issues] for key, issues in report.issues.items()},
        'orders': [asdict(row) for row in orders],
    }


@router.get('/stats')
async def inventory_stats(
    spec: FilterSpec = Depends(filter_spec),
    store: InventoryStore = Depends(inventory_store),
):
    result = await _load(store, spec)
    return asdict(summarize_movements(result.records))
