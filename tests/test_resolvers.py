import pytest

from evmcl.exceptions import ExternalCallError
from evmcl.parser import parse_script
from evmcl.protocols import ContentResolver, Provider, ScriptParser
from evmcl.resolvers import IPFSResolver


class FakeResponse:
    def __init__(self, status, body):
        self.status = status
        self.body = body

    async def text(self):
        return self.body

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False


class FakeSession:
    def __init__(self, status=200, body="name: tokens\n"):
        self.status = status
        self.body = body
        self.urls = []

    def get(self, url):
        self.urls.append(url)
        return FakeResponse(self.status, self.body)


def test_gateway_gets_trailing_slash():
    resolver = IPFSResolver("https://gateway.example/ipfs")
    assert resolver.url_for("QmHash") == "https://gateway.example/ipfs/QmHash"


@pytest.mark.asyncio
async def test_fetch_is_memoized():
    session = FakeSession()
    resolver = IPFSResolver(session=session)
    assert await resolver.fetch("QmHash") == "name: tokens\n"
    assert await resolver.fetch("QmHash") == "name: tokens\n"
    assert session.urls == ["https://ipfs.io/ipfs/QmHash"]
    resolver.clear()
    await resolver.fetch("QmHash")
    assert len(session.urls) == 2


@pytest.mark.asyncio
async def test_error_status_raises():
    resolver = IPFSResolver(session=FakeSession(status=504, body="timeout"))
    with pytest.raises(ExternalCallError):
        await resolver.fetch("QmHash")
    assert "cached=0" in str(resolver)


def test_reference_collaborators_match_protocols():
    class Node:
        async def request(self, method, params=()):
            return None

        async def resolve_name(self, name):
            return None

    assert isinstance(IPFSResolver(), ContentResolver)
    assert isinstance(Node(), Provider)
    assert not isinstance(IPFSResolver(), Provider)
    assert isinstance(parse_script, ScriptParser)
