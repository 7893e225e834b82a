from debt_ledger.db.session import engine
from sqlalchemy.exc import SQLAlchemyError

async def check_db_service():
    try:
        async with engine.connect() as conn:
            await conn.exec_driver_sql("SELECT 1")
        return {"db": True, "message":"Database is connected"}
    except SQLAlchemyError as e:
        return {"db": False, "error": str(e)}
    
async def system_health():
    return {
        "status": "ok"
    }
