"""
Unit tests for soulycore.core.memory.structured - Structured Memory Module

Entities and contacts against a real (SQLite) relational store.
"""

import asyncio
from unittest.mock import MagicMock
from uuid import uuid4

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from soulycore.core.memory import (
    EntityData,
    EntityRecord,
    StorageUnavailable,
    StructuredFilter,
    StructuredMemoryModule,
    ValidationError,
)
from soulycore.models.memory import Entity

# ====================
# Entity upsert
# ====================


@pytest.mark.asyncio
async def test_store_entity_returns_id(structured):
    entity_id = await structured.store(
        EntityRecord(data=EntityData(name="Alice", type="Person", details="Works at Acme"))
    )

    entities = await structured.query(StructuredFilter(kind="entity", id=entity_id))
    assert len(entities) == 1
    assert entities[0].name == "Alice"
    assert entities[0].details == "Works at Acme"


@pytest.mark.asyncio
async def test_entity_upsert_keeps_one_row_with_latest_details(structured, session_factory):
    """Storing the same (name, type) twice updates details instead of duplicating."""
    first_id = await structured.store(
        {"kind": "entity", "data": {"name": "Alice", "type": "Person", "details": "Engineer"}}
    )
    second_id = await structured.store(
        {"kind": "entity", "data": {"name": "Alice", "type": "Person", "details": "CTO"}}
    )

    assert first_id == second_id

    async with session_factory() as session:
        count = (await session.execute(select(func.count()).select_from(Entity))).scalar_one()
    assert count == 1

    entities = await structured.query(StructuredFilter(kind="entity"))
    assert entities[0].details == "CTO"


@pytest.mark.asyncio
async def test_entity_upsert_refreshes_created_at(structured):
    await structured.store({"kind": "entity", "data": {"name": "Alice", "type": "Person"}})
    await structured.store({"kind": "entity", "data": {"name": "Acme", "type": "Organization"}})

    # Re-storing Alice moves her to the front (newest first)
    await structured.store(
        {"kind": "entity", "data": {"name": "Alice", "type": "Person", "details": "new"}}
    )

    entities = await structured.query(StructuredFilter(kind="entity"))
    assert [e.name for e in entities] == ["Alice", "Acme"]


@pytest.mark.asyncio
async def test_same_name_different_type_are_distinct(structured):
    await structured.store({"kind": "entity", "data": {"name": "Mercury", "type": "Planet"}})
    await structured.store({"kind": "entity", "data": {"name": "Mercury", "type": "Element"}})

    entities = await structured.query(StructuredFilter(kind="entity"))
    assert sorted(e.type for e in entities) == ["Element", "Planet"]


@pytest.mark.asyncio
async def test_entity_without_details_stores_empty_json(structured):
    await structured.store({"kind": "entity", "data": {"name": "Acme", "type": "Organization"}})

    entities = await structured.query(StructuredFilter(kind="entity"))
    assert entities[0].details == "{}"


@pytest.mark.asyncio
async def test_dict_details_are_serialized(structured):
    await structured.store(
        {
            "kind": "entity",
            "data": {"name": "Acme", "type": "Organization", "details": {"hq": "Berlin"}},
        }
    )

    entities = await structured.query(StructuredFilter(kind="entity"))
    assert entities[0].details == '{"hq": "Berlin"}'


@pytest.mark.asyncio
async def test_concurrent_upserts_converge_to_one_row(structured, session_factory):
    await asyncio.gather(
        *[
            structured.store(
                {"kind": "entity", "data": {"name": "Alice", "type": "Person", "details": f"v{i}"}}
            )
            for i in range(5)
        ]
    )

    async with session_factory() as session:
        count = (await session.execute(select(func.count()).select_from(Entity))).scalar_one()
    assert count == 1


# ====================
# Validation
# ====================


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "record",
    [
        {"kind": "entity", "data": {"name": "Alice"}},
        {"kind": "entity", "data": {"type": "Person"}},
        {"kind": "entity", "data": {"name": "", "type": "Person"}},
        {"kind": "contact", "data": {"email": "a@example.com"}},
        {"kind": "project", "data": {"name": "Apollo"}},
    ],
)
async def test_store_rejects_missing_identity_fields(structured, record):
    with pytest.raises(ValidationError):
        await structured.store(record)


# ====================
# Contacts
# ====================


@pytest.mark.asyncio
async def test_contact_upsert_by_name_and_email(structured):
    await structured.store(
        {"kind": "contact", "data": {"name": "Bob", "email": "bob@acme.com", "company": "Acme"}}
    )
    await structured.store(
        {
            "kind": "contact",
            "data": {"name": "Bob", "email": "bob@acme.com", "company": "Globex", "notes": "moved"},
        }
    )

    contacts = await structured.query(StructuredFilter(kind="contact"))
    assert len(contacts) == 1
    assert contacts[0].company == "Globex"
    assert contacts[0].notes == "moved"


@pytest.mark.asyncio
async def test_contacts_without_email_never_collide(structured):
    await structured.store({"kind": "contact", "data": {"name": "Bob"}})
    await structured.store({"kind": "contact", "data": {"name": "Bob"}})

    contacts = await structured.query(StructuredFilter(kind="contact"))
    assert len(contacts) == 2


@pytest.mark.asyncio
async def test_contacts_ordered_by_name(structured):
    for name in ["Zoe", "adam", "Mia"]:
        await structured.store({"kind": "contact", "data": {"name": name, "email": f"{name}@x.io"}})

    contacts = await structured.query(StructuredFilter(kind="contact"))
    assert [c.name for c in contacts] == sorted(["Zoe", "adam", "Mia"])


@pytest.mark.asyncio
async def test_contact_name_filter_is_case_insensitive_substring(structured):
    await structured.store({"kind": "contact", "data": {"name": "Alice Smith", "email": "a@x.io"}})
    await structured.store({"kind": "contact", "data": {"name": "Bob Jones", "email": "b@x.io"}})

    contacts = await structured.query(StructuredFilter(kind="contact", name="SMI"))
    assert [c.name for c in contacts] == ["Alice Smith"]


@pytest.mark.asyncio
async def test_contact_name_filter_treats_wildcards_literally(structured):
    for name in ["100% Corp", "1000 Corp", "Ann_Lee", "Ann Lee"]:
        await structured.store({"kind": "contact", "data": {"name": name}})

    percent = await structured.query(StructuredFilter(kind="contact", name="0%"))
    underscore = await structured.query(StructuredFilter(kind="contact", name="n_l"))

    assert [c.name for c in percent] == ["100% Corp"]
    assert [c.name for c in underscore] == ["Ann_Lee"]


@pytest.mark.asyncio
async def test_contact_tags_round_trip(structured):
    contact_id = await structured.store(
        {"kind": "contact", "data": {"name": "Bob", "email": "b@x.io", "tags": ["vip", "eu"]}}
    )

    contacts = await structured.query(StructuredFilter(kind="contact", id=contact_id))
    assert contacts[0].tags == ["vip", "eu"]


# ====================
# Delete
# ====================


@pytest.mark.asyncio
async def test_delete_returns_affected_rows(structured):
    entity_id = await structured.store(
        {"kind": "entity", "data": {"name": "Alice", "type": "Person"}}
    )

    assert await structured.delete("entity", entity_id) == 1
    assert await structured.query(StructuredFilter(kind="entity")) == []


@pytest.mark.asyncio
async def test_delete_missing_record_returns_zero(structured):
    assert await structured.delete("contact", uuid4()) == 0


@pytest.mark.asyncio
async def test_delete_unknown_kind_rejected(structured):
    with pytest.raises(ValidationError):
        await structured.delete("project", uuid4())


# ====================
# Backend failures
# ====================


@pytest.mark.asyncio
async def test_unreachable_database_raises_storage_unavailable():
    session = MagicMock()
    session.__aenter__.side_effect = OperationalError("SELECT 1", {}, Exception("refused"))
    module = StructuredMemoryModule(MagicMock(return_value=session))

    with pytest.raises(StorageUnavailable) as exc_info:
        await module.query(StructuredFilter(kind="entity"))

    assert exc_info.value.backend == "structured"
