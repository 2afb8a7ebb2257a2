"""
Unit tests for soulycore.models.database
"""

import pytest
from sqlalchemy import inspect, select

from soulycore.models import Entity
from soulycore.models.database import drop_db, get_db, get_engine, init_db


def _table_names(sync_conn):
    return set(inspect(sync_conn).get_table_names())


@pytest.mark.asyncio
async def test_init_get_and_drop(tmp_path):
    url = f"sqlite+aiosqlite:///{tmp_path / 'db.sqlite'}"

    await init_db(url)

    async with get_db(url) as db:
        db.add(Entity(name="Alice", type="Person", details="Works at Acme Corp"))
        await db.commit()

    async with get_db(url) as db:
        entities = (await db.execute(select(Entity))).scalars().all()
    assert [e.name for e in entities] == ["Alice"]

    await drop_db(url)

    engine = get_engine(url)
    try:
        async with engine.connect() as conn:
            tables = await conn.run_sync(_table_names)
    finally:
        await engine.dispose()
    assert "entities" not in tables
    assert "pipeline_runs" not in tables
