"""Base/head relationships between pull requests."""

import logging
from typing import Dict, List, Optional, Sequence, Set

from ..github import PullRequest

logger = logging.getLogger(__name__)


def build_pr_graph(prs: Sequence[PullRequest]) -> Dict[str, List[PullRequest]]:
    """Map each base branch to the PRs built on it, keeping listing order."""
    graph: Dict[str, List[PullRequest]] = {}
    for pr in prs:
        graph.setdefault(pr.base_ref, []).append(pr)
    return graph


def find_cycle(prs: Sequence[PullRequest]) -> Optional[List[str]]:
    """Return the branches of a base/head cycle, first branch repeated at the end.

    Returns None when the PRs form a forest, which is what propagation needs
    to reach a fixpoint.
    """
    graph = build_pr_graph(prs)
    done: Set[str] = set()

    for start in graph:
        if start in done:
            continue
        # Iterative DFS; path holds the branches on the current descent
        path: List[str] = []
        on_path: Set[str] = set()
        stack = [(start, iter(graph.get(start, [])))]
        path.append(start)
        on_path.add(start)
        while stack:
            branch, children = stack[-1]
            child = next(children, None)
            if child is None:
                stack.pop()
                path.pop()
                on_path.discard(branch)
                done.add(branch)
                continue
            head = child.head_ref
            if head in on_path:
                return path[path.index(head):] + [head]
            if head in done:
                continue
            stack.append((head, iter(graph.get(head, []))))
            path.append(head)
            on_path.add(head)
    return None


def order_by_stack(prs: Sequence[PullRequest]) -> List[PullRequest]:
    """Order PRs so every PR comes after the PR whose head is its base.

    Roots are the bases that no PR produces, taken in listing order; siblings
    keep listing order. Must only be called on acyclic input.
    """
    graph = build_pr_graph(prs)
    heads = {pr.head_ref for pr in prs}
    ordered: List[PullRequest] = []
    seen: Set[int] = set()

    def visit(base: str) -> None:
        for pr in graph.get(base, []):
            if id(pr) in seen:
                continue
            seen.add(id(pr))
            ordered.append(pr)
            visit(pr.head_ref)

    for pr in prs:
        if pr.base_ref not in heads:
            visit(pr.base_ref)

    logger.debug(f"Stack order: {[pr.head_ref for pr in ordered]}")
    return ordered
