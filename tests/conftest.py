from __future__ import annotations

from typing import Callable, Dict, List, Union

import httpx
import pytest

from mirrorpulse.app.models import Site, SiteConfig

# url -> status code, or an exception instance to raise
Reply = Union[int, Exception]


def mock_client(replies: Dict[str, Reply], seen: List[httpx.Request] | None = None) -> httpx.AsyncClient:
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        reply = replies.get(str(request.url), 404)
        if isinstance(reply, Exception):
            raise reply
        return httpx.Response(reply)

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
def make_client() -> Callable[..., httpx.AsyncClient]:
    return mock_client


@pytest.fixture
def two_group_config() -> SiteConfig:
    return SiteConfig(
        sites=(
            Site(name="A", url="https://a.test/", group="g1"),
            Site(name="A-mirror", url="https://a-mirror.test/", group="g1", is_mirror=True),
            Site(name="B", url="https://b.test/", group="g2"),
        ),
        group_descriptions={"g1": "First group"},
    )
