"""Reference graph over normalized models: self-references and cycles."""

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Sequence, Set, Tuple
from collections import defaultdict

import structlog

from typebridge.codes import ErrorCode, Stage
from typebridge.errors import Issue
from typebridge.kernel.ir import ElementType, NormalizedField, NormalizedModel

log = structlog.get_logger(__name__)

# Enumeration stops once this many distinct cycles have been found.
MAX_REPORTED_CYCLES = 50


def iter_reference_targets(fields: Sequence[NormalizedField]) -> Iterator[str]:
    """Yield every model name referenced by these fields, in field order.

    Covers singular references, array elements and nested fields (recursively).
    """
    for f in fields:
        if f.is_reference and f.reference_target:
            yield f.reference_target
        elif f.is_array and f.element is not None:
            if f.element.reference_target:
                yield f.element.reference_target
            elif f.element.nested_fields:
                yield from iter_reference_targets(f.element.nested_fields)
        elif f.nested_fields:
            yield from iter_reference_targets(f.nested_fields)


class ReferenceGraph:
    """Model-level reference graph (referencing model -> referenced model)."""

    def __init__(self, models: Sequence[NormalizedModel]):
        self.order: List[str] = [m.name for m in models]  # Discovery order
        self.nodes: Set[str] = set(self.order)
        self.edges: Dict[str, Set[str]] = defaultdict(set)  # model -> models it references
        self.reverse_edges: Dict[str, Set[str]] = defaultdict(set)  # model -> models referencing it
        self.unresolved: Dict[str, Set[str]] = defaultdict(set)  # model -> unknown targets
        self._build(models)

    def _build(self, models: Sequence[NormalizedModel]) -> None:
        for model in models:
            self.edges[model.name] = set()
            for target in iter_reference_targets(model.fields):
                if target not in self.nodes:
                    self.unresolved[model.name].add(target)
                    continue
                self.edges[model.name].add(target)
                self.reverse_edges[target].add(model.name)

    def get_references(self, node: str) -> Set[str]:
        """Models directly referenced by ``node``."""
        return self.edges.get(node, set())

    def get_referrers(self, node: str) -> Set[str]:
        """Models that directly reference ``node``."""
        return self.reverse_edges.get(node, set())

    def strongly_connected_components(self) -> Dict[str, int]:
        """Map each model to the index of its strongly connected component (Tarjan)."""
        index: Dict[str, int] = {}
        low: Dict[str, int] = {}
        stack: List[str] = []
        on_stack: Set[str] = set()
        component: Dict[str, int] = {}
        roots: List[str] = []

        def strongconnect(node: str) -> None:
            index[node] = low[node] = len(index)
            stack.append(node)
            on_stack.add(node)
            for target in sorted(self.get_references(node)):
                if target not in index:
                    strongconnect(target)
                    low[node] = min(low[node], low[target])
                elif target in on_stack:
                    low[node] = min(low[node], index[target])

            if low[node] == index[node]:
                number = len(roots)
                roots.append(node)
                while True:
                    member = stack.pop()
                    on_stack.discard(member)
                    component[member] = number
                    if member == node:
                        break

        for node in self.order:
            if node not in index:
                strongconnect(node)
        return component

    def detect_cycles(self) -> List[List[str]]:
        """Find reference cycles of length >= 2.

        DFS from every model (discovery order, neighbours sorted) tracking the
        current path. Revisiting a node on the path closes a cycle, reported
        as ``[A, B, A]``. Self-loops are skipped; each cycle is reported once
        regardless of the node it was entered from.

        A cycle never leaves its strongly connected component, so paths are
        only enumerated inside a component, and every cycle of a component is
        reachable from whichever of its models is entered first. Each
        component is therefore explored once; acyclic graphs take linear time.
        """
        cycles: List[List[str]] = []
        seen: Set[Tuple[str, ...]] = set()
        component = self.strongly_connected_components()
        explored: Set[int] = set()

        def dfs(node: str, path: List[str], on_path: Set[str]) -> None:
            if len(cycles) >= MAX_REPORTED_CYCLES:
                return
            path.append(node)
            on_path.add(node)

            for target in sorted(self.get_references(node)):
                if len(cycles) >= MAX_REPORTED_CYCLES:
                    break
                if target == node:
                    continue  # Self-reference, handled by marking
                if component[target] != component[node]:
                    enter(target)
                    continue
                if target in on_path:
                    cycle = path[path.index(target):] + [target]
                    key = _normalize_cycle(cycle)
                    if key not in seen:
                        seen.add(key)
                        cycles.append(cycle)
                    continue
                dfs(target, path, on_path)

            on_path.discard(node)
            path.pop()

        def enter(node: str) -> None:
            if component[node] in explored:
                return
            explored.add(component[node])
            dfs(node, [], set())

        for start in self.order:
            enter(start)

        return cycles


def _normalize_cycle(cycle: List[str]) -> Tuple[str, ...]:
    """Rotate a closed cycle to start at its smallest node, for de-duplication."""
    nodes = cycle[:-1]
    min_idx = min(range(len(nodes)), key=lambda i: nodes[i])
    return tuple(nodes[min_idx:] + nodes[:min_idx])


def format_cycle(cycle: List[str]) -> str:
    return " -> ".join(cycle)


def _mark_element(element: ElementType, owner: str) -> ElementType:
    if element.reference_target == owner and not element.is_self_reference:
        return element.model_copy(update={"is_self_reference": True})
    if element.nested_fields:
        return element.model_copy(update={"nested_fields": _mark_fields(element.nested_fields, owner)})
    return element


def _mark_fields(fields: Sequence[NormalizedField], owner: str) -> Tuple[NormalizedField, ...]:
    marked = []
    for f in fields:
        if f.is_reference and f.reference_target == owner:
            f = f.model_copy(update={"is_self_reference": True})
        elif f.is_array and f.element is not None:
            element = _mark_element(f.element, owner)
            if element is not f.element:
                f = f.model_copy(update={"element": element})
        elif f.nested_fields:
            f = f.model_copy(update={"nested_fields": _mark_fields(f.nested_fields, owner)})
        marked.append(f)
    return tuple(marked)


def mark_self_references(models: Sequence[NormalizedModel]) -> List[NormalizedModel]:
    """Return copies of ``models`` with ``is_self_reference`` set where the
    reference target (direct, array element or nested) is the owning model.

    Types are unchanged; the input models are not mutated.
    """
    return [m.model_copy(update={"fields": _mark_fields(m.fields, m.name)}) for m in models]


@dataclass
class AnalysisResult:
    models: List[NormalizedModel]
    cycles: List[List[str]] = field(default_factory=list)
    issues: List[Issue] = field(default_factory=list)
    graph: Optional[ReferenceGraph] = None


def analyze(models: Sequence[NormalizedModel]) -> AnalysisResult:
    """Run self-reference marking and cycle detection over the whole batch.

    Both results are advisory: nothing here fails the run.
    """
    marked = mark_self_references(models)
    graph = ReferenceGraph(marked)
    cycles = graph.detect_cycles()

    issues: List[Issue] = []
    for cycle in cycles:
        log.info("cycle_detected", cycle=format_cycle(cycle))
        issues.append(Issue(
            code=ErrorCode.CYCLE_DETECTED,
            message=f"Circular reference: {format_cycle(cycle)} (emitted as forward type references)",
            stage=Stage.ANALYZE,
            element_id=cycle[0],
            cycle_path=cycle,
        ))

    by_name = {m.name: m for m in marked}
    for name in graph.order:
        for target in sorted(graph.unresolved.get(name, ())):
            issues.append(Issue(
                code=ErrorCode.UNRESOLVED_REFERENCE,
                message=f"Model '{name}' references unknown model '{target}'",
                stage=Stage.ANALYZE,
                path=by_name[name].source_path,
                element_id=name,
            ))

    return AnalysisResult(models=marked, cycles=cycles, issues=issues, graph=graph)
