from typing import Optional
from fastapi import APIRouter, Depends, Query
from testtracker.services.analytics.hardening import hardening_service
from testtracker.services.storage.excel_store import ExcelStore, get_store

router = APIRouter()


@router.get("")
def get_cell_hardening_data(
    site: Optional[str] = None,
    cell_type: Optional[str] = Query(None, alias="cellType"),
    cell: Optional[str] = None,
    store: ExcelStore = Depends(get_store),
):
    data = hardening_service.entries(store.read_test_status(), site=site, cell_type=cell_type, cell=cell)
    return {"success": True, "data": data, "count": len(data)}


@router.get("/summary")
def get_cell_hardening_summary(
    site: Optional[str] = None,
    cell_type: Optional[str] = Query(None, alias="cellType"),
    cell: Optional[str] = None,
    store: ExcelStore = Depends(get_store),
):
    data = hardening_service.summarize(store.read_test_status(), site=site, cell_type=cell_type, cell=cell)
    return {"success": True, "data": data, "count": len(data)}
