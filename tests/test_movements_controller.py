import asyncio
from datetime import date, timedelta
from decimal import Decimal

import pytest

from core.movements import MovementsController, MutationError
from core.repositories.movements import InvalidMovementError, MovementEntry, ResourceKind
from tests import sample_data
from tests.sample_data import FAST_SETTINGS

ENTRIES = ResourceKind.ENTRIES
EXITS = ResourceKind.EXITS


def _controller(repo=None):
    repo = repo or sample_data.RecordingRepository(
        entries=sample_data.make_entries(), exits=sample_data.make_exits()
    )
    return repo, MovementsController(repo, FAST_SETTINGS)


def test_setters_before_mount_only_update_state():
    repo, controller = _controller()

    assert controller.set_search(ENTRIES, "gants") is None
    assert controller.set_category("EPP") is None
    assert controller.set_page(EXITS, 2) is None

    assert repo.calls == []
    assert controller.filters.search_entries == "gants"
    assert controller.page_state(EXITS).page == 2


def test_mount_fetches_each_resource_exactly_once():
    repo, controller = _controller()

    async def scenario():
        await controller.mount()
        await controller.wait_idle()
        await controller.close()

    asyncio.run(scenario())
    assert len(repo.calls_for(ENTRIES)) == 1
    assert len(repo.calls_for(EXITS)) == 1
    assert len(controller.entries) == 3
    assert len(controller.exits) == 2
    assert controller.page_state(ENTRIES).total_pages == 1
    assert not controller.loading


def test_mount_twice_is_rejected():
    _, controller = _controller()

    async def scenario():
        await controller.mount()
        with pytest.raises(RuntimeError):
            await controller.mount()
        await controller.close()
        with pytest.raises(RuntimeError):
            await controller.mount()

    asyncio.run(scenario())


def test_rapid_search_edits_send_one_request_with_last_text():
    repo, controller = _controller()

    async def scenario():
        async with controller:
            for text in ("g", "gu", "gua"):
                controller.set_search_entries(text)
                await asyncio.sleep(0.01)
            await controller.wait_idle()

    asyncio.run(scenario())
    entries_calls = repo.calls_for(ENTRIES)
    assert len(entries_calls) == 2
    assert entries_calls[-1]["search"] == "gua"
    # exits search was not touched
    assert len(repo.calls_for(EXITS)) == 1
    assert [record.id for record in controller.entries] == [2]


def test_search_refetch_is_silent():
    repo, controller = _controller()
    seen = []

    async def scenario():
        async with controller:
            original = repo.get_all

            async def observed(resource, **query):
                seen.append((controller.loading, controller.refreshing))
                return await original(resource, **query)

            repo.get_all = observed
            controller.set_search(EXITS, "beta")
            await controller.wait_idle()

    asyncio.run(scenario())
    assert seen == [(False, True)]
    assert [record.id for record in controller.exits] == [2]


def test_shared_filter_edits_refresh_both_resources_once():
    repo, controller = _controller()

    async def scenario():
        async with controller:
            controller.set_category("EPP")
            controller.set_date_range("01/10/2025", "2025-10-31")
            await controller.wait_idle()

    asyncio.run(scenario())
    for resource in ResourceKind:
        calls = repo.calls_for(resource)
        assert len(calls) == 2
        assert calls[-1]["category"] == "EPP"
        assert calls[-1]["start_date"] == date(2025, 10, 1)
        assert calls[-1]["end_date"] == date(2025, 10, 31)
    assert [record.id for record in controller.entries] == [3, 2]
    assert [record.id for record in controller.exits] == [2]


def test_close_cancels_pending_debounce():
    repo, controller = _controller()

    async def scenario():
        await controller.mount()
        task = controller.set_search(ENTRIES, "casco")
        await controller.close()
        await asyncio.sleep(FAST_SETTINGS.search_debounce * 2)
        return task

    task = asyncio.run(scenario())
    assert task.cancelled()
    assert len(repo.calls_for(ENTRIES)) == 1
    assert controller.closed


def test_create_on_empty_repository_updates_pagination():
    repo, controller = _controller(sample_data.RecordingRepository())

    async def scenario():
        async with controller:
            return await controller.create(
                ENTRIES,
                {
                    "date": "20/10/2025",
                    "product_code": "AF2025",
                    "description": "Afloja Todo Aerosol 300ml",
                    "unit_price": "3.00",
                    "quantity": 2,
                },
            )

    created = asyncio.run(scenario())
    assert created.id == 1
    state = controller.page_state(ENTRIES)
    assert state.total_items == 1
    assert state.total_pages == 1
    assert len(controller.entries) == 1
    assert controller.entries[0].quantity == 2
    assert controller.entries[0].unit_price == Decimal("3.00")
    assert controller.exits == ()


def test_page_past_the_end_keeps_page_and_empties_rows():
    start = date(2025, 1, 1)
    entries = [
        MovementEntry(
            id=index,
            date=start + timedelta(days=index),
            product_code=f"P-{index:03d}",
            description=f"Produit {index}",
            unit_price=Decimal("1.00"),
            quantity=1,
        )
        for index in range(1, 51)
    ]
    repo, controller = _controller(sample_data.RecordingRepository(entries=entries))

    async def scenario():
        async with controller:
            task = controller.set_page(ENTRIES, 2)
            await task

    asyncio.run(scenario())
    assert repo.calls_for(ENTRIES)[-1]["page"] == 2
    assert controller.entries == ()
    state = controller.page_state(ENTRIES)
    assert state.page == 2
    assert state.total_items == 50
    assert state.total_pages == 1


def test_set_limit_refetches_without_resetting_page():
    repo, controller = _controller()

    async def scenario():
        async with controller:
            await controller.set_page(EXITS, 3)
            await controller.set_limit(EXITS, 1)

    asyncio.run(scenario())
    query = repo.calls_for(EXITS)[-1]
    assert query["page"] == 3
    assert query["limit"] == 1
    assert controller.page_state(EXITS).total_pages == 2
    assert len(repo.calls_for(ENTRIES)) == 1


def test_failed_delete_keeps_record_and_reports_error():
    repo, controller = _controller()

    async def scenario():
        async with controller:
            repo.fail_mutations = "network error"
            with pytest.raises(MutationError, match="network error"):
                await controller.delete(ENTRIES, 1)

    asyncio.run(scenario())
    assert 1 in [record.id for record in controller.entries]
    assert controller.error == "network error"
    assert controller.error_resource is ENTRIES
    assert not controller.refreshing
    assert not controller.loading


def test_refetch_failure_is_absorbed():
    repo, controller = _controller()

    async def scenario():
        async with controller:
            repo.fail_next[EXITS] = "Erreur réseau"
            await controller.refetch_exits()
            await controller.refetch_entries()

    asyncio.run(scenario())
    # the entries refetch cleared the shared slot
    assert controller.error is None
    assert len(controller.exits) == 2


def test_successful_refetch_after_failed_mutation_clears_error():
    repo, controller = _controller()
    seen = {}

    async def scenario():
        async with controller:
            repo.fail_mutations = "network error"
            with pytest.raises(MutationError):
                await controller.delete(ENTRIES, 1)
            seen["after_delete"] = controller.error
            repo.fail_mutations = None
            await controller.update(ENTRIES, 2, {"quantity": 41})
            seen["after_update"] = controller.error

            repo.fail_mutations = "network error"
            with pytest.raises(MutationError):
                await controller.update_quantity(1, {"quantity": 2})
            controller.set_search_exits("alfa")
            await controller.wait_idle()

    asyncio.run(scenario())
    assert seen == {"after_delete": "network error", "after_update": None}
    assert controller.error is None
    assert controller.error_resource is None


def test_invalid_date_range_leaves_filters_untouched():
    repo, controller = _controller()

    async def scenario():
        async with controller:
            with pytest.raises(InvalidMovementError):
                controller.set_date_range("2025-10-01", "31/02/2025")
            await controller.wait_idle()

    asyncio.run(scenario())
    assert controller.filters.start_date is None
    assert controller.filters.end_date is None
    assert len(repo.calls_for(ENTRIES)) == 1
    assert len(repo.calls_for(EXITS)) == 1
