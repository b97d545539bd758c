"""Dependency graph utilities.

Provides topological sorting for determining versioning order in a
monorepo. When project A depends on project B, B must be versioned first so
that A's bump decision can take B's new version into account.
"""

from __future__ import annotations

from .models import ProjectGraph, ProjectNode


def sort_projects_topologically(
    graph: ProjectGraph, projects: list[ProjectNode]
) -> list[ProjectNode]:
    """Topologically sort ``projects`` by their local dependencies.

    Uses Kahn's algorithm over the graph edges restricted to ``projects``.
    Ready projects keep their input order for deterministic output.

    Cycles do not abort the sort. When every remaining project still waits
    on another one, a cycle that depends on nothing else pending is broken
    open at its earliest member with the fewest unresolved dependencies.
    Each project appears exactly once, and projects outside a cycle still
    come after everything they depend on.

    Args:
        graph: Project graph with ``dependencies`` edges.
        projects: Projects to order.

    Returns:
        The same projects, dependencies first.

    Example:
        If A depends on B, and B depends on C:
        sort_projects_topologically(graph, [A, B, C]) → [C, B, A]
    """
    by_name = {p.name: p for p in projects}
    position = {p.name: i for i, p in enumerate(projects)}

    # Dependencies of each project that are part of this batch
    batch_deps: dict[str, list[str]] = {name: [] for name in by_name}
    # Track reverse dependencies (who depends on each project)
    reverse_deps: dict[str, list[str]] = {name: [] for name in by_name}

    for name in by_name:
        for dep in dict.fromkeys(graph.dependencies.get(name, [])):
            if dep in by_name and dep != name:
                batch_deps[name].append(dep)
                reverse_deps[dep].append(name)

    # Count incoming edges (dependencies) for each project
    in_degree = {name: len(deps) for name, deps in batch_deps.items()}

    order: list[str] = []
    emitted: set[str] = set()
    queue = [name for name in by_name if in_degree[name] == 0]

    while len(order) < len(by_name):
        if not queue:
            # Only cycles and their dependents remain: break a cycle open
            candidates = _cycle_entry_points(batch_deps, emitted)
            queue.append(min(candidates, key=lambda n: (in_degree[n], position[n])))

        node = queue.pop(0)
        if node in emitted:
            continue
        order.append(node)
        emitted.add(node)
        for dependent in reverse_deps[node]:
            in_degree[dependent] -= 1
            if in_degree[dependent] == 0 and dependent not in emitted:
                queue.append(dependent)
        queue.sort(key=position.__getitem__)

    return [by_name[name] for name in order]


def _reachable(start: str, deps: dict[str, list[str]], emitted: set[str]) -> set[str]:
    """Return the unemitted projects ``start`` depends on, directly or not."""
    seen: set[str] = set()
    stack = [start]
    while stack:
        for dep in deps[stack.pop()]:
            if dep not in emitted and dep not in seen:
                seen.add(dep)
                stack.append(dep)
    return seen


def _cycle_entry_points(deps: dict[str, list[str]], emitted: set[str]) -> list[str]:
    """Return the unemitted projects whose pending dependencies all lead back.

    These are the members of cycles that wait on nothing outside their own
    cycle. Projects that merely depend on a cycle are excluded, so they are
    still emitted after every project they need.
    """
    remaining = [name for name in deps if name not in emitted]
    reach = {name: _reachable(name, deps, emitted) for name in remaining}
    return [
        name
        for name in remaining
        if name in reach[name] and all(name in reach[dep] for dep in reach[name])
    ]
