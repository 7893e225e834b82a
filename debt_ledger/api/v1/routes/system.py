from fastapi import APIRouter
from debt_ledger.services.system_services import check_db_service, system_health

router = APIRouter()

@router.get("/health/db")
async def check_db():
    return await check_db_service()

@router.get("/health")
async def health():
    return await system_health()
