from fastapi import APIRouter, Depends
from testtracker.models.schemas import SiteSetupRequest
from testtracker.services.storage.excel_store import ExcelStore, get_store

router = APIRouter()


@router.get("/sites")
def get_sites(store: ExcelStore = Depends(get_store)):
    return {"success": True, "data": store.list_sites()}


@router.post("/site")
def create_site_configuration(body: SiteSetupRequest, store: ExcelStore = Depends(get_store)):
    machines = [m.model_dump() for m in body.machines]
    result = store.configure_site(body.site_number, body.phase, machines, body.user)
    return {
        "success": True,
        "message": f"Site {body.site_number} - {body.phase} configured successfully",
        "data": result,
    }
