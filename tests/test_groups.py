from __future__ import annotations

import asyncio

import httpx
import pytest

from mirrorpulse.app.groups import DuplicatePrimaryError, GroupBoard, MissingPrimaryError, partition_sites
from mirrorpulse.app.models import Site, SiteConfig, SiteConfigError


def test_partition_single_group_scenario() -> None:
    a = Site(name="A", url="https://a.test", group="g1")
    mirror = Site(name="A-mirror", url="https://a-mirror.test", group="g1", is_mirror=True)
    groups = partition_sites([a, mirror], {})
    assert len(groups) == 1
    assert groups[0].title == "g1"
    assert groups[0].primary == a
    assert groups[0].mirrors == (mirror,)
    assert groups[0].subtitle is None


def test_partition_preserves_order_and_covers_every_site() -> None:
    sites = [
        Site(name="m1", url="https://m1.test", group="beta", is_mirror=True),
        Site(name="A", url="https://a.test", group="alpha"),
        Site(name="B", url="https://b.test", group="beta"),
        Site(name="m2", url="https://m2.test", group="beta", is_mirror=True),
        Site(name="a-m", url="https://am.test", group="alpha", is_mirror=True),
        Site(name="C", url="https://c.test", group="gamma"),
    ]
    groups = partition_sites(sites, {"beta": "Second", "unused": "x"})

    assert [g.title for g in groups] == ["beta", "alpha", "gamma"]
    assert [g.subtitle for g in groups] == ["Second", None, None]
    assert [g.primary.name for g in groups] == ["B", "A", "C"]
    assert [m.name for m in groups[0].mirrors] == ["m1", "m2"]

    counts = {t: sum(1 for s in sites if s.group == t) for t in ("alpha", "beta", "gamma")}
    for g in groups:
        assert len(g.mirrors) == counts[g.title] - 1

    flattened = [s for g in groups for s in g.sites]
    assert sorted(flattened, key=lambda s: s.url) == sorted(sites, key=lambda s: s.url)
    assert len(flattened) == len(set(flattened))


def test_partition_group_without_primary_fails() -> None:
    sites = [
        Site(name="A", url="https://a.test", group="g1"),
        Site(name="orphan", url="https://o.test", group="g2", is_mirror=True),
    ]
    with pytest.raises(MissingPrimaryError, match="'g2'"):
        partition_sites(sites)


def test_partition_group_with_two_primaries_fails() -> None:
    sites = [
        Site(name="A", url="https://a.test", group="g1"),
        Site(name="B", url="https://b.test", group="g1"),
    ]
    with pytest.raises(DuplicatePrimaryError):
        partition_sites(sites)
    assert issubclass(DuplicatePrimaryError, SiteConfigError)


def test_partition_empty() -> None:
    assert partition_sites([]) == []


async def _settle(board: GroupBoard) -> None:
    for _ in range(50):
        if board.summary()["Pending"] == 0:
            return
        await asyncio.sleep(0.01)


@pytest.mark.asyncio
async def test_board_renders_one_monitor_per_site(make_client, two_group_config: SiteConfig) -> None:
    client = make_client({
        "https://a.test/": 200,
        "https://a-mirror.test/": 301,
        "https://b.test/": 500,
    })
    board = GroupBoard(two_group_config, client=client, interval=60)
    assert set(board.monitors) == {s.url for s in two_group_config.sites}
    assert all(v["status"] == "Pending" for g in board.render() for v in [g["primary"], *g["mirrors"]])

    board.start()
    await _settle(board)
    view = board.render()

    assert [g["title"] for g in view] == ["g1", "g2"]
    assert view[0]["subtitle"] == "First group"
    assert view[0]["primary"]["name"] == "A"
    assert view[0]["primary"]["is_mirror"] is False
    assert view[0]["primary"]["text"] == "Online"
    assert [m["text"] for m in view[0]["mirrors"]] == ["Moved"]
    assert view[0]["mirrors"][0]["is_mirror"] is True
    assert view[1]["primary"]["text"] == "Offline (500)"
    assert view[1]["mirrors"] == []
    assert board.summary() == {"Pending": 0, "Moved": 1, "Online": 1, "Offline": 1, "total": 3}

    await board.aclose()
    await client.aclose()
    assert not any(m.running for m in board.monitors.values())


@pytest.mark.asyncio
async def test_board_reload_keeps_unchanged_monitors(make_client, two_group_config: SiteConfig) -> None:
    client = make_client({"https://a.test/": 200, "https://b.test/": 200, "https://c.test/": 200})
    board = GroupBoard(two_group_config, client=client, interval=60)
    board.start()
    await _settle(board)
    kept = board.monitors["https://a.test/"]
    dropped = board.monitors["https://b.test/"]

    board.reload(SiteConfig(sites=(
        Site(name="A", url="https://a.test/", group="g1"),
        Site(name="C", url="https://c.test/", group="g3"),
    )))

    assert board.monitors["https://a.test/"] is kept
    assert kept.running
    assert "https://b.test/" not in board.monitors
    assert not dropped.running
    assert board.monitors["https://c.test/"].running
    assert [g["title"] for g in board.render()] == ["g1", "g3"]

    await _settle(board)
    assert board.render()[1]["primary"]["text"] == "Online"

    await board.aclose()
    await client.aclose()


@pytest.mark.asyncio
async def test_board_reload_invalid_config_leaves_board_untouched(make_client, two_group_config: SiteConfig) -> None:
    client = make_client({})
    board = GroupBoard(two_group_config, client=client, interval=60)
    before = dict(board.monitors)
    with pytest.raises(MissingPrimaryError):
        board.reload(SiteConfig(sites=(Site(name="m", url="https://m.test/", group="g", is_mirror=True),)))
    assert board.monitors == before
    await client.aclose()


@pytest.mark.asyncio
async def test_aclose_waits_for_probes_of_dropped_monitors() -> None:
    gate = asyncio.Event()
    started = asyncio.Event()

    async def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "b.test":
            started.set()
            await gate.wait()
        return httpx.Response(200)

    a = Site(name="A", url="https://a.test/", group="g1")
    b = Site(name="B", url="https://b.test/", group="g2")
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        board = GroupBoard(SiteConfig(sites=(a, b)), client=client, interval=60)
        board.start()
        await started.wait()
        dropped = board.monitors[b.url]

        board.reload(SiteConfig(sites=(a,)))
        closing = asyncio.create_task(board.aclose())
        await asyncio.sleep(0.02)
        assert not closing.done()

        gate.set()
        await closing

    assert not dropped.running
    assert dropped.observation.is_pending
