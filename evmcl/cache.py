# evmcl Completion Engine — (c) 2025 rtj.dev LLC — MIT Licensed
"""
Session cache for resolved modules.

Resolving a module can mean a network round trip, while a user moving the
cursor around a script does not change which modules it loads. The cache keeps
the MODULE and ALIAS bindings of the last passes, keyed by the module-load
signature: the ordered `(module name, alias)` pairs of every top-level `load`
command of the script, wherever the cursor is. A different signature resets
the cache.

The cache is an explicit object owned by whoever owns the engine. It never
holds USER bindings.
"""
from __future__ import annotations

from typing import Iterable

from evmcl.ast import AsExpression, CommandNode
from evmcl.bindings import Binding, BindingsManager, BindingsSpace
from evmcl.evaluation import identifier_value
from evmcl.logger import logger

LoadEntry = tuple[str, str | None]
LoadSignature = tuple[LoadEntry, ...]

CACHED_SPACES = (BindingsSpace.MODULE, BindingsSpace.ALIAS)


def load_entry(node: CommandNode) -> LoadEntry | None:
    """Return `(module name, alias)` of a `load` command, or None if it names nothing."""
    if not node.args:
        return None
    target = node.args[0]
    alias = None
    if isinstance(target, AsExpression):
        alias = identifier_value(target.right)
        target = target.left
    name = identifier_value(target)
    if not name:
        return None
    return name, alias


class SessionCache:
    """
    Process-scoped cache of MODULE and ALIAS bindings.

    Methods:
        signature_for(load_nodes): Build the module-load signature of a script.
        sync(signature): Reset the cache when the signature changed.
        get(space, name): Return a cached binding or None.
        update(signature, bindings): Merge module and alias bindings.
        invalidate(): Force a reset.
    """

    def __init__(self) -> None:
        self.signature: LoadSignature | None = None
        self._bindings = BindingsManager()
        self._stats = {
            "hits": 0,
            "misses": 0,
            "updates": 0,
            "invalidations": 0,
        }

    @staticmethod
    def signature_for(load_nodes: Iterable[CommandNode]) -> LoadSignature:
        entries = (load_entry(node) for node in load_nodes)
        return tuple(entry for entry in entries if entry is not None)

    def sync(self, signature: LoadSignature) -> bool:
        """
        Align the cache with `signature`.

        Returns:
            bool: True if the cached bindings were kept.
        """
        if signature == self.signature:
            return True
        if self.signature is not None:
            logger.debug(
                "[SessionCache] Load signature changed %s -> %s", self.signature, signature
            )
            self._reset()
        self.signature = signature
        return False

    def get(self, space: BindingsSpace | str, name: str) -> Binding | None:
        space = BindingsSpace(space)
        if space not in CACHED_SPACES:
            return None
        if self._bindings.has_binding(space, name):
            self._stats["hits"] += 1
            return self._bindings.lookup_binding(space, name)
        self._stats["misses"] += 1
        return None

    def update(
        self, signature: LoadSignature, bindings: BindingsManager | Iterable[Binding]
    ) -> bool:
        """
        Merge the MODULE and ALIAS bindings of a finished pass.

        Bindings of a pass computed for another signature are ignored.

        Returns:
            bool: True if the cache was updated.
        """
        if signature != self.signature:
            logger.debug("[SessionCache] Ignoring update for stale signature %s", signature)
            return False
        if isinstance(bindings, BindingsManager):
            bindings = bindings.get_all_bindings()
        self._bindings.merge(b for b in bindings if b.space in CACHED_SPACES)
        self._stats["updates"] += 1
        return True

    def invalidate(self) -> None:
        self._reset()
        self.signature = None

    def _reset(self) -> None:
        self._bindings = BindingsManager()
        self._stats["invalidations"] += 1

    @property
    def stats(self) -> dict[str, int]:
        return dict(self._stats)

    def __len__(self) -> int:
        return len(self._bindings)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self._bindings.has_binding(BindingsSpace.MODULE, name)

    def __str__(self) -> str:
        return (
            f"SessionCache(signature={self.signature}, bindings={len(self)}, "
            f"stats={self._stats})"
        )
