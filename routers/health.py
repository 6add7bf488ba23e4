# routers/health.py
from fastapi import APIRouter, HTTPException
from sqlalchemy import inspect, text

from alembic.config import Config
from alembic.script import ScriptDirectory
from db import Base, engine

router = APIRouter(prefix="/health", tags=["health"])


@router.get("/db")
def health_db():
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
            present = set(inspect(conn).get_table_names())
    except Exception as e:
        raise HTTPException(status_code=503, detail=f"db_error: {type(e).__name__}: {e}")

    missing = sorted(set(Base.metadata.tables) - present)
    return {"ok": not missing, "missing_tables": missing}


def _alembic_heads() -> list[str]:
    script = ScriptDirectory.from_config(Config("alembic.ini"))
    return list(script.get_heads())


@router.get("/migrations")
def health_migrations():
    try:
        heads = _alembic_heads()
    except Exception:
        heads = []

    db_ver = None
    try:
        with engine.connect() as conn:
            if inspect(conn).has_table("alembic_version"):
                db_ver = conn.execute(text("SELECT version_num FROM alembic_version")).scalar_one_or_none()
    except Exception as e:
        return {"ok": False, "error": f"db_connect_failed: {e}", "code_heads": heads, "db_version": db_ver}

    synced = bool(heads) and db_ver in heads
    return {"ok": synced, "synced": synced, "db_version": db_ver, "code_heads": heads}
