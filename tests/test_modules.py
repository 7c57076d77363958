from decimal import Decimal

import pytest

from evmcl.ast import (
    AddressLiteral,
    ArrayExpression,
    HelperFunction,
    Identifier,
    NumberLiteral,
    OptionNode,
    StringLiteral,
    VariableIdentifier,
)
from evmcl.bindings import BindingsManager, BindingsSpace
from evmcl.evaluation import evaluate_argument, identifier_value, parse_number
from evmcl.exceptions import ExternalCallError
from evmcl.module import EagerEnvironment
from evmcl.modules import build_aragonos_module, build_std_module

ACCOUNT = "0x" + "1" * 40
DAO_ADDRESS = "0x" + "d" * 40


class FakeProvider:
    def __init__(self, name_result=DAO_ADDRESS):
        self.name_result = name_result
        self.requests = []

    async def request(self, method, params=()):
        self.requests.append(method)
        return [ACCOUNT]

    async def resolve_name(self, name):
        return self.name_result


@pytest.fixture
def std():
    return build_std_module()


@pytest.fixture
def aragonos():
    return build_aragonos_module()


def environment(*modules, provider=None):
    return EagerEnvironment(provider=provider, modules=list(modules))


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("1", 1),
        ("1e18", 10**18),
        ("12.5e18", 125 * 10**17),
        ("2d", 2 * 86400),
        ("1mo", 30 * 86400),
        ("-3", -3),
        ("0.5", Decimal("0.5")),
    ],
)
def test_parse_number(raw, expected):
    assert parse_number(raw) == expected


def test_parse_number_rejects_garbage():
    with pytest.raises(ValueError):
        parse_number("12abc")


@pytest.mark.asyncio
async def test_evaluate_arguments(std):
    bindings = BindingsManager()
    bindings.bind(BindingsSpace.USER, "$x", 7)
    env = environment(std, provider=FakeProvider())
    assert await evaluate_argument(StringLiteral("a"), bindings, env) == "a"
    assert await evaluate_argument(VariableIdentifier("$x"), bindings, env) == 7
    assert await evaluate_argument(VariableIdentifier("$y"), bindings, env) is None
    array = ArrayExpression([NumberLiteral("1"), Identifier("b")])
    assert await evaluate_argument(array, bindings, env) == [1, "b"]
    assert await evaluate_argument(OptionNode("flag"), bindings, env) is True
    assert await evaluate_argument(HelperFunction("me"), bindings, env) == ACCOUNT
    assert await evaluate_argument(HelperFunction("unknown"), bindings, env) is None
    assert await evaluate_argument(HelperFunction("token", [Identifier("DAI")]), bindings, env) is None


def test_identifier_value():
    assert identifier_value(Identifier("vault")) == "vault"
    assert identifier_value(VariableIdentifier("$x")) == "$x"
    assert identifier_value(NumberLiteral("1")) is None
    assert identifier_value(None) is None


@pytest.mark.asyncio
async def test_std_set_eager(std):
    command = std.get_command("set")
    bindings = BindingsManager()
    produced = await command.eager_execute(
        [VariableIdentifier("$me"), HelperFunction("me")],
        bindings,
        environment(std, provider=FakeProvider()),
    )
    assert [(b.space, b.name, b.value) for b in produced] == [
        (BindingsSpace.USER, "$me", ACCOUNT)
    ]


@pytest.mark.asyncio
async def test_std_set_keeps_binding_when_value_fails(std):
    command = std.get_command("set")
    produced = await command.eager_execute(
        [VariableIdentifier("$me"), HelperFunction("me")],
        BindingsManager(),
        environment(std),
    )
    assert produced[0].name == "$me"
    assert produced[0].value is None


@pytest.mark.asyncio
async def test_std_set_without_variable(std):
    command = std.get_command("set")
    assert await command.eager_execute([Identifier("x")], BindingsManager(), environment(std)) == []


@pytest.mark.asyncio
async def test_std_switch_completions(std):
    command = std.get_command("switch")
    assert "gnosis" in await command.complete_arg(0, [], BindingsManager())
    assert await command.complete_arg(1, [], BindingsManager()) == []


@pytest.mark.asyncio
async def test_std_date_helper(std):
    helper = std.get_helper("date")
    assert await helper.call(["2024-01-01"], environment(std)) == 1704067200
    assert await helper.call(["2024-01-01", 86400], environment(std)) == 1704153600


@pytest.mark.asyncio
async def test_me_helper_requires_provider(std):
    with pytest.raises(ExternalCallError):
        await std.get_helper("me").call([], environment(std))


@pytest.mark.asyncio
async def test_connect_resolves_dao_name(aragonos):
    command = aragonos.get_command("connect")
    provider = FakeProvider()
    produced = await command.eager_execute(
        [Identifier("my-dao")], BindingsManager(), environment(aragonos, provider=provider)
    )
    assert produced[0].name == "$dao"
    assert produced[0].value == DAO_ADDRESS


@pytest.mark.asyncio
async def test_connect_with_address_needs_no_provider(aragonos):
    command = aragonos.get_command("connect")
    produced = await command.eager_execute(
        [AddressLiteral(DAO_ADDRESS)], BindingsManager(), environment(aragonos)
    )
    assert produced[0].value == DAO_ADDRESS


@pytest.mark.asyncio
async def test_connect_unknown_dao(aragonos):
    command = aragonos.get_command("connect")
    with pytest.raises(ExternalCallError):
        await command.eager_execute(
            [Identifier("ghost")],
            BindingsManager(),
            environment(aragonos, provider=FakeProvider(name_result=None)),
        )
    with pytest.raises(ExternalCallError):
        await command.eager_execute([], BindingsManager(), environment(aragonos))


@pytest.mark.asyncio
async def test_aragonos_argument_completions(aragonos):
    install = aragonos.get_command("install")
    grant = aragonos.get_command("grant")
    assert "vault:new" in await install.complete_arg(0, [], BindingsManager())
    assert await install.complete_arg(1, [], BindingsManager()) == []
    assert "voting" in await grant.complete_arg(1, [], BindingsManager())
    assert "TRANSFER_ROLE" in await grant.complete_arg(2, [], BindingsManager())
    assert await grant.complete_arg(3, [], BindingsManager()) == []
    assert not aragonos.get_command("act").has_arg_completions
