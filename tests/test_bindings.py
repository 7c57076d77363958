import pytest

from evmcl.bindings import Binding, BindingsManager, BindingsSpace
from evmcl.exceptions import BindingNotFoundError, StructuralError


def test_bindings_space_from_string():
    assert BindingsSpace("USER") is BindingsSpace.USER
    assert BindingsSpace(" alias ") is BindingsSpace.ALIAS
    with pytest.raises(ValueError):
        BindingsSpace("global")


def test_lookup_falls_back_to_parent_scope():
    bindings = BindingsManager()
    bindings.bind(BindingsSpace.USER, "$amount", 10)
    bindings.enter_scope()
    assert bindings.lookup(BindingsSpace.USER, "$amount") == 10
    assert bindings.scope_depth == 1


def test_inner_scope_shadows_outer():
    bindings = BindingsManager()
    bindings.bind(BindingsSpace.USER, "$x", 1)
    bindings.enter_scope()
    bindings.bind(BindingsSpace.USER, "$x", 2)
    assert bindings.lookup(BindingsSpace.USER, "$x") == 2
    bindings.exit_scope()
    assert bindings.lookup(BindingsSpace.USER, "$x") == 1


def test_spaces_do_not_collide():
    bindings = BindingsManager()
    bindings.bind(BindingsSpace.MODULE, "token", "module")
    bindings.bind(BindingsSpace.USER, "token", "variable")
    assert bindings.lookup(BindingsSpace.MODULE, "token") == "module"
    assert bindings.lookup(BindingsSpace.USER, "token") == "variable"
    assert not bindings.has_binding(BindingsSpace.ALIAS, "token")


def test_lookup_miss_raises():
    bindings = BindingsManager()
    with pytest.raises(BindingNotFoundError) as exc_info:
        bindings.lookup(BindingsSpace.USER, "$missing")
    assert "$missing" in str(exc_info.value)
    assert bindings.get(BindingsSpace.USER, "$missing", "default") == "default"


def test_exit_root_scope_raises():
    bindings = BindingsManager()
    with pytest.raises(StructuralError):
        bindings.exit_scope()


def test_scope_context_manager():
    bindings = BindingsManager()
    with bindings.scope():
        bindings.bind(BindingsSpace.USER, "$tmp", 1)
        assert bindings.scope_depth == 1
    assert bindings.scope_depth == 0
    assert not bindings.has_binding(BindingsSpace.USER, "$tmp")


def test_scope_context_manager_detects_unbalanced_stack():
    bindings = BindingsManager()
    with pytest.raises(StructuralError):
        with bindings.scope():
            bindings.enter_scope()


def test_merge_manager_keeps_shadowing():
    source = BindingsManager()
    source.bind(BindingsSpace.USER, "$x", "outer")
    source.enter_scope()
    source.bind(BindingsSpace.USER, "$x", "inner")

    target = BindingsManager()
    target.merge(source)
    assert target.lookup(BindingsSpace.USER, "$x") == "inner"
    assert target.scope_depth == 0


def test_merge_iterable_and_reject_non_bindings():
    bindings = BindingsManager()
    bindings.merge([Binding(space=BindingsSpace.USER, name="$a", value=1)])
    assert bindings.lookup(BindingsSpace.USER, "$a") == 1
    with pytest.raises(StructuralError):
        bindings.merge([("$b", 2)])


def test_get_all_bindings_order_and_shadowing():
    bindings = BindingsManager()
    bindings.bind(BindingsSpace.USER, "$a", 1)
    bindings.bind(BindingsSpace.USER, "$b", 2)
    bindings.bind(BindingsSpace.MODULE, "std", object())
    bindings.enter_scope()
    bindings.bind(BindingsSpace.USER, "$a", 3)
    bindings.bind(BindingsSpace.USER, "$c", 4)

    user = bindings.get_all_bindings(BindingsSpace.USER)
    assert [(b.name, b.value) for b in user] == [("$a", 3), ("$b", 2), ("$c", 4)]
    assert len(bindings) == 4


def test_binding_is_immutable():
    binding = Binding(space=BindingsSpace.USER, name="$a", value=1)
    with pytest.raises(Exception):
        binding.value = 2


def test_preview_returns_tree():
    bindings = BindingsManager()
    bindings.bind(BindingsSpace.USER, "$a", 1)
    bindings.enter_scope()
    tree = bindings.preview(parent=None)
    assert len(tree.children) == 2
