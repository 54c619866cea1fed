"""
Concept prerequisite graph.
"""

from cadence.graph.concept_graph import (
    Concept,
    ConceptGraph,
    ConceptNode,
    MasteredConceptSet,
    build_concept_graph,
    find_learning_path,
    find_ready_concepts,
    get_all_prerequisites,
    get_all_unlocks,
    has_cycle,
    has_prerequisites_mastered,
)

__all__ = [
    "Concept",
    "ConceptGraph",
    "ConceptNode",
    "MasteredConceptSet",
    "build_concept_graph",
    "get_all_prerequisites",
    "get_all_unlocks",
    "has_prerequisites_mastered",
    "find_ready_concepts",
    "find_learning_path",
    "has_cycle",
]
