from fastapi import APIRouter
from testtracker.api.endpoints import cell_hardening, setup, test_cases, test_status

api_router = APIRouter()
api_router.include_router(test_cases.router, prefix="/test-cases", tags=["test-cases"])
api_router.include_router(test_status.router, prefix="/test-status", tags=["test-status"])
api_router.include_router(setup.router, prefix="/setup", tags=["setup"])
api_router.include_router(cell_hardening.router, prefix="/cell-hardening", tags=["cell-hardening"])
