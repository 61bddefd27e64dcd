import asyncio
from datetime import date
from decimal import Decimal

import pytest

from core.data_repository import build_engine
from core.repositories.movements import (
    InMemoryMovementRepository,
    MovementExit,
    MovementNotFoundError,
    ResourceKind,
)
from core.repositories.stock_movements import SqlMovementRepository, ensure_movements_table


@pytest.fixture
def repo():
    engine = build_engine("sqlite://")
    ensure_movements_table(engine)
    yield SqlMovementRepository(engine)
    engine.dispose()


def _entry(day: int, code: str, **extra) -> dict:
    payload = {
        "date": date(2025, 10, day),
        "product_code": code,
        "description": f"Produit {code}",
        "unit_price": "3.00",
        "quantity": 2,
    }
    payload.update(extra)
    return payload


def test_create_and_list_entries(repo):
    async def scenario():
        first = await repo.create(ResourceKind.ENTRIES, _entry(1, "A-1", category="EPP"))
        await repo.create(ResourceKind.ENTRIES, _entry(3, "B-2"))
        await repo.create(ResourceKind.EXITS, _entry(2, "A-1", project="Alfa"))
        page = await repo.get_all(ResourceKind.ENTRIES, page=1, limit=1)
        epp = await repo.get_all(ResourceKind.ENTRIES, category="epp")
        return first, page, epp

    first, page, epp = asyncio.run(scenario())
    assert first.id is not None
    assert first.unit_price == Decimal("3.00")
    assert page.total == 2
    assert page.total_pages == 2
    assert [record.product_code for record in page.items] == ["B-2"]
    assert [record.product_code for record in epp.items] == ["A-1"]


def test_search_and_date_filters(repo):
    async def scenario():
        await repo.create(ResourceKind.EXITS, _entry(2, "A-1", project="Proyecto Alfa"))
        await repo.create(ResourceKind.EXITS, _entry(9, "C-3", responsible="Luis"))
        by_project = await repo.get_all(ResourceKind.EXITS, search="ALFA")
        by_date = await repo.get_all(
            ResourceKind.EXITS, start_date=date(2025, 10, 5), end_date=date(2025, 10, 31)
        )
        return by_project, by_date

    by_project, by_date = asyncio.run(scenario())
    assert [record.product_code for record in by_project.items] == ["A-1"]
    assert isinstance(by_project.items[0], MovementExit)
    assert by_project.items[0].project == "Proyecto Alfa"
    assert [record.product_code for record in by_date.items] == ["C-3"]


def test_update_quantity_and_delete(repo):
    async def scenario():
        created = await repo.create(ResourceKind.EXITS, _entry(2, "A-1"))
        updated = await repo.update_quantity(created.id, {"quantity": 7})
        await repo.delete(ResourceKind.EXITS, created.id)
        remaining = await repo.get_all(ResourceKind.EXITS)
        return updated, remaining

    updated, remaining = asyncio.run(scenario())
    assert updated.quantity == 7
    assert remaining.total == 0


def test_resources_do_not_leak_into_each_other(repo):
    async def scenario():
        created = await repo.create(ResourceKind.ENTRIES, _entry(2, "A-1"))
        await repo.delete(ResourceKind.EXITS, created.id)

    with pytest.raises(MovementNotFoundError):
        asyncio.run(scenario())


@pytest.mark.parametrize("search, expected", [("_", ["A_1"]), ("%", []), ("a_", ["A_1"])])
def test_search_wildcards_match_literally(repo, search, expected):
    memory = InMemoryMovementRepository()

    async def scenario():
        for day, code in ((1, "A-1"), (2, "AB2"), (3, "A_1")):
            await repo.create(ResourceKind.ENTRIES, _entry(day, code))
            await memory.create(ResourceKind.ENTRIES, _entry(day, code))
        sql_page = await repo.get_all(ResourceKind.ENTRIES, search=search)
        memory_page = await memory.get_all(ResourceKind.ENTRIES, search=search)
        return sql_page, memory_page

    sql_page, memory_page = asyncio.run(scenario())
    assert [record.product_code for record in sql_page.items] == expected
    assert [record.product_code for record in memory_page.items] == expected
