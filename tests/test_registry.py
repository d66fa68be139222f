import pytest

from glam.runtime.registry import DependencyGraph


def test_resolve_recompiles_waiting_templates() -> None:
    graph = DependencyGraph()
    graph.set_pending("Page", {"Header", "Footer"})
    graph.set_pending("Layout", {"Header"})
    calls = []

    def recompile(template: str):
        calls.append(template)
        return {"Footer"} if template == "Page" else set()

    assert graph.resolve("Header", recompile) == ["Page", "Layout"]
    assert calls == ["Page", "Layout"]
    assert graph.pending("Page") == {"Footer"}
    assert "Layout" not in graph
    assert graph.dependents("Header") == []
    assert graph.dependents("Footer") == ["Page"]


def test_failed_recompile_leaves_graph_unchanged() -> None:
    graph = DependencyGraph()
    graph.set_pending("Page", {"Header"})

    def recompile(template: str):
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        graph.resolve("Header", recompile)
    assert graph.pending("Page") == {"Header"}
    assert graph.dependents("Header") == ["Page"]


def test_set_pending_replaces_edges() -> None:
    graph = DependencyGraph()
    graph.set_pending("Page", {"A"})
    graph.set_pending("Page", {"B"})
    assert graph.dependents("A") == []
    assert graph.dependents("B") == ["Page"]

    graph.set_pending("Page", set())
    assert "Page" not in graph
    assert graph.snapshot() == {}


def test_resolving_unknown_name_is_a_no_op() -> None:
    graph = DependencyGraph()
    assert graph.resolve("Nobody", lambda template: set()) == []


def test_mutual_references() -> None:
    # A was registered while B was missing; B's own template can already see A.
    graph = DependencyGraph()
    graph.set_pending("A", {"B"})
    assert graph.resolve("B", lambda template: set()) == ["A"]
    assert graph.snapshot() == {}
