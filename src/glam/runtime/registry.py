"""Forward-reference bookkeeping between component templates."""

from typing import AbstractSet, Callable, Dict, FrozenSet, Iterable, List


class DependencyGraph:
    """Which templates still reference component names that are not registered.

    Edges run from a template to each pending name it uses. When a name gets
    registered, :meth:`resolve` recompiles every template waiting on it.
    """

    def __init__(self) -> None:
        self._pending: Dict[str, FrozenSet[str]] = {}  # template -> pending names
        self._reverse_deps: Dict[str, Dict[str, None]] = {}  # name -> waiting templates

    def __contains__(self, template: str) -> bool:
        return template in self._pending

    def pending(self, template: str) -> FrozenSet[str]:
        return self._pending.get(template, frozenset())

    def snapshot(self) -> Dict[str, FrozenSet[str]]:
        return dict(self._pending)

    def dependents(self, name: str) -> List[str]:
        """Templates waiting on ``name``, in the order they started waiting."""
        return list(self._reverse_deps.get(name, {}))

    def set_pending(self, template: str, names: Iterable[str]) -> None:
        self.discard(template)
        names = frozenset(names)
        if not names:
            return
        self._pending[template] = names
        for name in names:
            self._reverse_deps.setdefault(name, {})[template] = None

    def discard(self, template: str) -> None:
        for name in self._pending.pop(template, frozenset()):
            waiting = self._reverse_deps.get(name)
            if waiting is None:
                continue
            waiting.pop(template, None)
            if not waiting:
                del self._reverse_deps[name]

    def resolve(self, name: str, recompile: Callable[[str], AbstractSet[str]]) -> List[str]:
        """Recompile every template waiting on ``name``.

        ``recompile`` returns the names still pending for the template. Edges
        are only replaced once every recompile succeeded, so a failure leaves
        the graph as it was.
        """
        dependents = self.dependents(name)
        results = {template: recompile(template) for template in dependents}
        for template, pending in results.items():
            self.set_pending(template, pending)
        return dependents
