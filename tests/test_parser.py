from evmcl.ast import (
    AddressLiteral,
    ArrayExpression,
    AsExpression,
    BoolLiteral,
    HelperFunction,
    Identifier,
    NumberLiteral,
    OptionNode,
    Position,
    StringLiteral,
    VariableIdentifier,
)
from evmcl.parser import parse_script

SCRIPT = """load aragonos as ar
set $amount 1200e18
ar:connect my-dao (
  install vault:new
  grant @me vault TRANSFER_ROLE
)
print "done"
"""


def test_parse_commands_and_locations():
    tree, errors = parse_script(SCRIPT)
    assert not errors
    assert [c.qualified_name for c in tree.body] == ["load", "set", "ar:connect", "print"]

    set_node = tree.body[1]
    assert set_node.loc.start == Position(2, 0)
    assert set_node.loc.end == Position(2, 19)
    assert isinstance(set_node.args[0], VariableIdentifier)
    assert isinstance(set_node.args[1], NumberLiteral)


def test_load_alias_is_folded():
    tree, _ = parse_script("load aragonos as ar")
    (arg,) = tree.body[0].args
    assert isinstance(arg, AsExpression)
    assert arg.left.value == "aragonos"
    assert arg.right.value == "ar"


def test_block_structure():
    tree, _ = parse_script(SCRIPT)
    connect = tree.body[2]
    assert connect.module == "ar"
    assert connect.has_block()
    assert connect.block.closed
    assert [c.name for c in connect.block.commands] == ["install", "grant"]
    assert connect.block.contains_line(4)
    assert not connect.block.contains_line(3)
    assert not connect.block.contains_line(6)
    assert connect.loc.end.line == 6


def test_unclosed_block_reaches_end_of_text():
    tree, errors = parse_script("ar:connect my-dao (\n  install vault:new\n  ")
    connect = tree.body[0]
    assert not connect.block.closed
    assert connect.block.loc.end.line == 3
    assert connect.block.contains_line(3)
    assert any("Unclosed block" in e.message for e in errors)


def test_argument_kinds():
    tree, errors = parse_script(
        'exec 0x' + "a" * 40 + ' "quoted" true [1, 2] @token(DAI) --gas 100 7d'
    )
    assert not errors
    args = tree.body[0].args
    assert isinstance(args[0], AddressLiteral)
    assert isinstance(args[1], StringLiteral) and args[1].value == "quoted"
    assert isinstance(args[2], BoolLiteral) and args[2].value is True
    assert isinstance(args[3], ArrayExpression) and len(args[3].elements) == 2
    assert isinstance(args[4], HelperFunction) and args[4].name == "token"
    assert isinstance(args[4].args[0], Identifier)
    assert isinstance(args[5], OptionNode) and args[5].name == "gas"
    assert isinstance(args[6], NumberLiteral) and args[6].raw == "7d"


def test_nested_helpers():
    tree, errors = parse_script("set $b @token.balance(@token(DAI), @me)")
    assert not errors
    helper = tree.body[0].args[1]
    assert helper.name == "token.balance"
    assert isinstance(helper.args[0], HelperFunction)
    assert helper.args[1].name == "me"


def test_comments_and_blank_lines():
    tree, errors = parse_script("# header\n\nset $x 1 # trailing\n")
    assert not errors
    assert len(tree) == 1
    assert len(tree.body[0].args) == 2


def test_errors_do_not_raise():
    tree, errors = parse_script(')\nset $x "open\n1abc\nprint ok')
    messages = [e.message for e in errors]
    assert "Unmatched ')'" in messages
    assert "Unterminated string" in messages
    assert any("Invalid command name" in m for m in messages)
    assert [c.name for c in tree.body] == ["set", "print"]


def test_partial_prefixed_command():
    tree, _ = parse_script("ar:")
    node = tree.body[0]
    assert node.module == "ar"
    assert node.name == ""


def test_tree_queries():
    tree, _ = parse_script(SCRIPT)
    assert [c.name for c in tree.get_commands_until_line(3)] == ["load", "set", "connect"]
    assert [c.name for c in tree.get_commands_until_line(3, exclude=["load"])] == [
        "set",
        "connect",
    ]
    assert [c.name for c in tree.get_load_commands(2)] == ["load"]
    assert tree.get_load_commands(1) == []
    assert tree.get_load_commands() == tree.get_load_commands(2)
    assert tree.get_command_at_line(5).name == "grant"
    assert tree.get_command_at_line(6) is None
    assert [c.name for c in tree.get_enclosing_commands(4)] == ["connect"]
    assert [c.name for c in tree.walk()] == [
        "load",
        "set",
        "connect",
        "install",
        "grant",
        "print",
    ]
