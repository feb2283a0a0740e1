"""Whole-graph evaluation: resolve, propagate temperatures, solve.

recompute() is the single entry point used by the controller and the CLI.
It reads the graph and environment and returns a new ProductionSolution;
nothing is cached between calls except the pure resolver results.
"""

import logging
from dataclasses import replace

from pollution import Environment, advance
from resolver import resolve_cache_info
from rate_solver import AllocationRule, ProductionSolution, solve
from temperature import apply_overlay, propagate

_LOGGER = logging.getLogger("production_network")


def recompute(
    graph,
    environment: Environment,
    rule: AllocationRule = AllocationRule.FAIR_SHARE,
) -> ProductionSolution:
    """Evaluate a network snapshot.

    Precondition:
        graph is a NetworkGraph whose nodes passed add_node validation

    Postcondition:
        recipes are resolved against environment
        temperatures are propagated using the flows of a first solve
        the returned solution is solved on the temperature-adjusted recipes
        the same graph and environment always give the same solution

    Args:
        graph: network to evaluate
        environment: environment to resolve recipes against
        rule: flow sharing rule

    Returns:
        ProductionSolution including edge temperatures and unresolved temperature edges
    """
    recipes = graph.resolved_recipes(environment)
    preliminary = solve(graph, recipes, rule)
    overlay = propagate(graph, recipes, dict(preliminary.edge_flows))
    solution = solve(graph, apply_overlay(recipes, overlay), rule)
    return replace(
        solution,
        edge_temperatures=overlay.edge_temperatures,
        unresolved_edges=overlay.unresolved_edges,
    )


def tick(
    graph,
    environment: Environment,
    solution: ProductionSolution,
    rule: AllocationRule = AllocationRule.FAIR_SHARE,
) -> tuple[Environment, ProductionSolution]:
    """Advance pollution by one tick and re-evaluate if it changed.

    Returns:
        tuple of the new environment and the solution valid for it
    """
    advanced = advance(environment, solution)
    if advanced == environment:
        return environment, solution
    return advanced, recompute(graph, advanced, rule)


def run_ticks(
    graph,
    environment: Environment,
    count: int,
    rule: AllocationRule = AllocationRule.FAIR_SHARE,
) -> tuple[Environment, ProductionSolution]:
    """Evaluate, then advance pollution count times."""
    solution = recompute(graph, environment, rule)
    for _ in range(count):
        environment, solution = tick(graph, environment, solution, rule)
    _LOGGER.debug("Global pollution after %d ticks: %s", count, environment.global_pollution)
    _LOGGER.debug("Resolver cache after ticking: %s", resolve_cache_info())
    return environment, solution
