"""Derivation dependency graph."""

from form_engine.graph.graph import DependencyGraph, Edge, GraphBuildResult, build_graph

__all__ = ["DependencyGraph", "Edge", "GraphBuildResult", "build_graph"]
