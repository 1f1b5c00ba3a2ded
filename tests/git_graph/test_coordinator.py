import asyncio

import pytest

from git_graph.coordinator import (
    ReconfigurationCoordinator,
    invalid_path_message,
    now_using_message,
)
from git_graph.event import ChangeBus
from git_graph.notifications import MemoryNotificationSink
from git_graph.types import UNABLE_TO_FIND_GIT_MSG

from tests.git_graph.fakes import OPT_GIT, SYSTEM_GIT, FakeResolver, system_resolver


def _coordinator(resolver):
    bus = ChangeBus("git_executable")
    published = []
    bus.subscribe(published.append)
    sink = MemoryNotificationSink()
    return ReconfigurationCoordinator(resolver, bus, sink), published, sink


@pytest.mark.asyncio
async def test_initial_resolution_publishes_once():
    coordinator, published, sink = _coordinator(system_resolver())

    identity = await coordinator.resolve_initial(None)

    assert identity == SYSTEM_GIT
    assert coordinator.current == SYSTEM_GIT
    assert published == [SYSTEM_GIT]
    assert coordinator.emissions == 1
    assert sink.notifications == []


@pytest.mark.asyncio
async def test_initial_resolution_uses_configured_path():
    resolver = system_resolver()
    coordinator, published, _ = _coordinator(resolver)

    await coordinator.resolve_initial(OPT_GIT.path)

    assert resolver.calls == [("locate", OPT_GIT.path)]
    assert published == [OPT_GIT]


@pytest.mark.asyncio
async def test_initial_failure_reports_once_and_never_publishes():
    coordinator, published, sink = _coordinator(FakeResolver())

    identity = await coordinator.resolve_initial(None)

    assert identity is None
    assert coordinator.current is None
    assert published == []
    assert coordinator.emissions == 0
    assert sink.errors == [UNABLE_TO_FIND_GIT_MSG]
    assert sink.information == []


@pytest.mark.asyncio
async def test_held_back_initial_identity_is_announced_once():
    coordinator, published, _ = _coordinator(system_resolver())

    await coordinator.resolve_initial(None, publish=False)
    assert published == []
    assert coordinator.current == SYSTEM_GIT

    assert coordinator.announce() is True
    assert coordinator.announce() is False
    assert published == [SYSTEM_GIT]
    assert coordinator.emissions == 1


@pytest.mark.asyncio
async def test_announce_without_resolution_publishes_nothing():
    coordinator, published, _ = _coordinator(FakeResolver())

    await coordinator.resolve_initial(None, publish=False)

    assert coordinator.announce() is False
    assert published == []


@pytest.mark.asyncio
async def test_invalid_new_path_keeps_previous_executable():
    coordinator, published, sink = _coordinator(system_resolver())
    await coordinator.resolve_initial(None)
    before = coordinator.current

    result = await coordinator.on_path_changed("/tmp/not-git")

    assert result is None
    assert coordinator.current == before
    assert published == [SYSTEM_GIT]
    assert sink.errors == [invalid_path_message("/tmp/not-git")]
    assert "/tmp/not-git" in sink.errors[0]


@pytest.mark.asyncio
async def test_invalid_new_path_after_failed_startup_stays_absent():
    coordinator, published, sink = _coordinator(FakeResolver())
    await coordinator.resolve_initial(None)

    await coordinator.on_path_changed("/tmp/not-git")

    assert coordinator.current is None
    assert published == []
    assert sink.errors == [UNABLE_TO_FIND_GIT_MSG, invalid_path_message("/tmp/not-git")]


@pytest.mark.asyncio
async def test_valid_new_path_replaces_and_publishes():
    coordinator, published, sink = _coordinator(system_resolver())
    await coordinator.resolve_initial(None)

    result = await coordinator.on_path_changed(OPT_GIT.path)

    assert result == OPT_GIT
    assert coordinator.current == OPT_GIT
    assert published == [SYSTEM_GIT, OPT_GIT]
    assert sink.information == [now_using_message(OPT_GIT)]
    assert OPT_GIT.path in sink.information[0]
    assert OPT_GIT.version in sink.information[0]


@pytest.mark.asyncio
async def test_recovery_after_failed_startup():
    resolver = FakeResolver({OPT_GIT.path: OPT_GIT.version})
    coordinator, published, _ = _coordinator(resolver)
    await coordinator.resolve_initial(None)

    await coordinator.on_path_changed(OPT_GIT.path)

    assert coordinator.current == OPT_GIT
    assert published == [OPT_GIT]


@pytest.mark.asyncio
async def test_unset_path_is_ignored():
    resolver = system_resolver()
    coordinator, published, sink = _coordinator(resolver)
    await coordinator.resolve_initial(None)
    calls_before = list(resolver.calls)

    assert await coordinator.on_path_changed(None) is None

    assert resolver.calls == calls_before
    assert published == [SYSTEM_GIT]
    assert sink.notifications == []


@pytest.mark.asyncio
async def test_each_failure_is_reported_even_when_repeated():
    coordinator, _, sink = _coordinator(system_resolver())
    await coordinator.resolve_initial(None)

    await coordinator.on_path_changed("/bad/one")
    await coordinator.on_path_changed("/bad/one")
    await coordinator.on_path_changed("/bad/two")

    assert sink.errors == [
        invalid_path_message("/bad/one"),
        invalid_path_message("/bad/one"),
        invalid_path_message("/bad/two"),
    ]


@pytest.mark.asyncio
async def test_emissions_equal_successful_resolutions():
    coordinator, published, _ = _coordinator(system_resolver())
    await coordinator.resolve_initial(None)

    for path in ["/bad", OPT_GIT.path, "/worse", SYSTEM_GIT.path, OPT_GIT.path]:
        await coordinator.on_path_changed(path)

    assert coordinator.emissions == 4
    assert published == [SYSTEM_GIT, OPT_GIT, SYSTEM_GIT, OPT_GIT]


@pytest.mark.asyncio
async def test_concurrent_changes_resolve_one_at_a_time():
    resolver = system_resolver()
    resolver.delay = 0.01
    coordinator, published, _ = _coordinator(resolver)
    await coordinator.resolve_initial(None)

    await asyncio.gather(
        coordinator.on_path_changed(OPT_GIT.path),
        coordinator.on_path_changed("/bad"),
        coordinator.on_path_changed(SYSTEM_GIT.path),
    )

    assert resolver.max_in_flight == 1
    # Applied in arrival order; the last successful change wins.
    assert published == [SYSTEM_GIT, OPT_GIT, SYSTEM_GIT]
    assert coordinator.current == SYSTEM_GIT


@pytest.mark.asyncio
async def test_current_never_regresses_to_absent():
    coordinator, _, _ = _coordinator(system_resolver())
    await coordinator.resolve_initial(None)

    for path in ["/a", "/b", "", "/c"]:
        await coordinator.on_path_changed(path)
        assert coordinator.current is not None
