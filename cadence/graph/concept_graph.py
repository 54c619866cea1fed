"""
Concept Graph.

Prerequisite / unlock relationships between concepts, with the traversals
the queue pipeline needs: transitive closures, readiness checks, a
prerequisites-first learning path and cycle detection.

``MasteredConceptSet`` is the mastery capability consumed by eligibility
prerequisite gating.
"""
from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class Concept:
    """Authored concept with its dependency edges."""
    concept_id: str
    prerequisites: list[str] = field(default_factory=list)
    unlocks: list[str] = field(default_factory=list)
    related: list[str] = field(default_factory=list)
    children: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Concept:
        return cls(
            concept_id=str(data.get("concept_id") or data["id"]),
            prerequisites=list(data.get("prerequisites", [])),
            unlocks=list(data.get("unlocks", [])),
            related=list(data.get("related", [])),
            children=list(data.get("children", [])),
        )


@dataclass
class ConceptNode:
    concept_id: str
    prerequisites: list[str] = field(default_factory=list)
    unlocks: list[str] = field(default_factory=list)
    related: list[str] = field(default_factory=list)
    children: list[str] = field(default_factory=list)


@dataclass
class ConceptGraph:
    nodes: dict[str, ConceptNode] = field(default_factory=dict)

    def __contains__(self, concept_id: str) -> bool:
        return concept_id in self.nodes

    def get(self, concept_id: str) -> Optional[ConceptNode]:
        return self.nodes.get(concept_id)


class MasteredConceptSet:
    """Set of mastered concept ids exposing ``is_mastered``."""

    def __init__(self, concept_ids: Iterable[str] = ()):
        self._mastered = set(concept_ids)

    def is_mastered(self, concept_id: str) -> bool:
        return concept_id in self._mastered

    def add(self, concept_id: str) -> None:
        self._mastered.add(concept_id)

    def __contains__(self, concept_id: str) -> bool:
        return concept_id in self._mastered

    def __len__(self) -> int:
        return len(self._mastered)


def _as_set(mastered: Iterable[str] | MasteredConceptSet) -> set[str] | MasteredConceptSet:
    return mastered if isinstance(mastered, MasteredConceptSet) else set(mastered)


def build_concept_graph(concepts: Iterable[Concept]) -> ConceptGraph:
    """
    Build a graph; reverse ``unlocks`` edges are added from prerequisites.

    Prerequisites that reference unknown concepts are kept on the node but
    contribute no reverse edge.
    """
    concepts = list(concepts)
    nodes: dict[str, ConceptNode] = {}

    for concept in concepts:
        nodes[concept.concept_id] = ConceptNode(
            concept_id=concept.concept_id,
            prerequisites=list(concept.prerequisites),
            unlocks=list(concept.unlocks),
            related=list(concept.related),
            children=list(concept.children),
        )

    for concept in concepts:
        for prereq_id in nodes[concept.concept_id].prerequisites:
            prereq = nodes.get(prereq_id)
            if prereq and concept.concept_id not in prereq.unlocks:
                prereq.unlocks.append(concept.concept_id)

    return ConceptGraph(nodes=nodes)


def _closure(graph: ConceptGraph, concept_id: str, edge: str) -> list[str]:
    visited: set[str] = set()
    found: list[str] = []

    def visit(node_id: str) -> None:
        if node_id in visited:
            return
        visited.add(node_id)
        node = graph.get(node_id)
        if node is None:
            return
        for next_id in getattr(node, edge):
            if next_id not in visited:
                found.append(next_id)
                visit(next_id)

    visit(concept_id)
    return found


def get_all_prerequisites(graph: ConceptGraph, concept_id: str) -> list[str]:
    """Transitive prerequisites in depth-first order."""
    return _closure(graph, concept_id, "prerequisites")


def get_all_unlocks(graph: ConceptGraph, concept_id: str) -> list[str]:
    """Transitive unlocks in depth-first order."""
    return _closure(graph, concept_id, "unlocks")


def has_prerequisites_mastered(
    graph: ConceptGraph,
    concept_id: str,
    mastered: Iterable[str] | MasteredConceptSet,
) -> bool:
    """Direct prerequisites all mastered. Unknown concepts are never ready."""
    node = graph.get(concept_id)
    if node is None:
        return False
    mastered = _as_set(mastered)
    return all(prereq_id in mastered for prereq_id in node.prerequisites)


def find_ready_concepts(
    graph: ConceptGraph,
    mastered: Iterable[str] | MasteredConceptSet,
    learned: Iterable[str] = (),
) -> list[str]:
    """Concepts not yet learned whose prerequisites are all mastered."""
    mastered = _as_set(mastered)
    learned = set(learned)
    return [
        concept_id
        for concept_id in graph.nodes
        if concept_id not in learned and has_prerequisites_mastered(graph, concept_id, mastered)
    ]


def find_learning_path(
    graph: ConceptGraph,
    targets: Iterable[str],
    mastered: Iterable[str] | MasteredConceptSet = (),
) -> list[str]:
    """
    Order in which to learn ``targets``.

    Prerequisites come before the concepts that need them; mastered
    concepts and unknown ids are left out.
    """
    mastered = _as_set(mastered)
    visited: set[str] = set()
    path: list[str] = []

    def visit(node_id: str) -> None:
        if node_id in visited:
            return
        visited.add(node_id)
        node = graph.get(node_id)
        if node is None:
            return
        for prereq_id in node.prerequisites:
            visit(prereq_id)
        if node_id not in mastered:
            path.append(node_id)

    for target_id in targets:
        visit(target_id)

    return path


def has_cycle(graph: ConceptGraph) -> bool:
    """True if any prerequisite chain loops back on itself."""
    visited: set[str] = set()
    on_stack: set[str] = set()

    def visit(node_id: str) -> bool:
        if node_id in on_stack:
            return True
        if node_id in visited:
            return False
        visited.add(node_id)
        on_stack.add(node_id)
        node = graph.get(node_id)
        if node is not None:
            for prereq_id in node.prerequisites:
                if visit(prereq_id):
                    return True
        on_stack.discard(node_id)
        return False

    return any(visit(concept_id) for concept_id in list(graph.nodes) if concept_id not in visited)
