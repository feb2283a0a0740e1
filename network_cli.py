#!/usr/bin/env python3
"""Command-line interface for production network evaluation."""

import argparse
import json
import sys
import logging

from catalog import Power, find_product
from network_controller import NetworkController
from network_render import render_network
from parsing_utils import parse_node_count
from rate_solver import AllocationRule
from resolver import preview_recipe
from stats import total_stats


def parse_count_list(items):
    """Parse repeated Node:Count arguments into a list of tuples.

    Precondition:
        items is None or a list of strings

    Postcondition:
        returns list of (node_id, count) tuples
        order and duplicates are preserved

    Args:
        items: strings like "r_water_pump_1:2"

    Returns:
        list of (node_id, count) tuples

    Raises:
        ValueError: if any item has invalid Node:Count format
    """
    if not items:
        return []
    return [parse_node_count(item) for item in items if item.strip()]


def _product_label(product_id: str) -> str:
    product = find_product(product_id)
    return product.name if product is not None else product_id


def _format_power(power) -> str:
    if isinstance(power, Power):
        return f"{power.max:g} max / {power.average:g} average"
    return str(power)


def _print_solution(controller: NetworkController) -> None:
    """Print the excess / deficiency report and network totals to stdout.

    Precondition:
        controller holds a computed solution

    Postcondition:
        excess, deficiency, pollution, health and totals are printed
    """
    solution = controller.get_solution()
    summary = controller.get_summary()
    totals = total_stats(controller.get_graph(), dict(solution.recipes))

    print("Excess:")
    for entry in solution.excess:
        print(f"  {_product_label(entry.product_id)}: {entry.rate:.6g}/s "
              f"(produced {entry.total_production:.6g}/s, consumed {entry.connected:.6g}/s)")
    if not solution.excess:
        print("  none")

    print("Deficiency:")
    for entry in solution.deficiency:
        print(f"  {_product_label(entry.product_id)}: {entry.rate:.6g}/s "
              f"(needed {entry.total_demand:.6g}/s) at {', '.join(entry.affected_node_ids)}")
    if not solution.deficiency:
        print("  none")

    for edge_id in solution.stale_edges:
        print(f"Stale edge: {edge_id}")
    for edge_id in solution.unresolved_edges:
        print(f"Temperature cycle: {edge_id}")

    print(f"Global pollution: {controller.get_environment().global_pollution:g}%")
    print(f"Pollution rate: {solution.total_pollution:g}%/hr")
    print(f"Power: {totals.total_power:g}")
    print(f"Models: {totals.total_model_count}")
    print(f"Health score: {summary.health_score}")
    print(f"Profit: {controller.get_profit():.6g}/s")


def _print_preview(recipe_id: str, configuration: dict | None, global_pollution: float) -> None:
    """Print one resolved recipe.

    Raises:
        ValueError: if the recipe or configuration is invalid
    """
    recipe = preview_recipe(recipe_id, configuration, global_pollution)
    print(f"{recipe.recipe_id} on {recipe.machine_id}")
    print(f"  cycle time: {recipe.cycle_time}")
    print(f"  power: {_format_power(recipe.power)}")
    print(f"  pollution: {recipe.pollution}")
    for label, ports in (("in", recipe.inputs), ("out", recipe.outputs)):
        for ingredient in ports:
            print(f"  {label}: {_product_label(ingredient.product_id)} x {ingredient.quantity}")


def _parse_configuration(text: str | None) -> dict | None:
    if not text:
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid configuration JSON: {exc}") from exc


def _output_graphviz(graphviz_source: str, output_file: str) -> None:
    with open(output_file, "w", encoding="utf-8") as f:
        f.write(graphviz_source)
    print(f"\nGraphviz written to {output_file}", file=sys.stderr)


def _create_argument_parser() -> argparse.ArgumentParser:
    """Create and configure the CLI argument parser.

    Precondition:
        none

    Postcondition:
        returns configured ArgumentParser with all CLI arguments defined

    Returns:
        ArgumentParser instance ready to parse command-line arguments
    """
    parser = argparse.ArgumentParser(
        description="Evaluate production networks: excess, deficiency and pollution",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Report excess and deficiency of a saved network
  %(prog)s network.json

  # Run 3600 pollution ticks and draw the result
  %(prog)s network.json --ticks 3600 --dot network.dot

  # Override machine counts
  %(prog)s network.json --count r_water_pump_1:2 --count r_boiler_1:4

  # Show a resolved recipe
  %(prog)s --preview r_chemical_plant_01 --config '{"kind": "chemical_plant", "speed": 110}'
        """,
    )

    parser.add_argument("snapshot", nargs="?", help="Network snapshot JSON file")

    parser.add_argument(
        "--ticks", "-t", type=int, default=0, help="Pollution ticks to run before reporting"
    )

    parser.add_argument("--dot", "-d", help="Write graphviz output to file")

    parser.add_argument(
        "--rule",
        "-r",
        choices=[rule.value for rule in AllocationRule],
        default=AllocationRule.FAIR_SHARE.value,
        help="How flow is shared at ports with several edges",
    )

    parser.add_argument(
        "--count",
        "-c",
        action="append",
        default=[],
        help='Machine count override as "Node:Count" (repeatable)',
    )

    parser.add_argument("--save", "-s", help="Write the (updated) snapshot to file")

    parser.add_argument("--preview", "-p", help="Print the resolved recipe of a recipe id")

    parser.add_argument("--config", help="Configuration JSON for --preview")

    parser.add_argument(
        "--pollution", type=float, default=0.0, help="Global pollution for --preview"
    )

    return parser


def main():
    """Main CLI function.

    Precondition:
        command-line arguments are available via sys.argv

    Postcondition:
        the network is evaluated and reported, or a recipe preview is printed
        returns 0 on success, 1 on error

    Returns:
        exit code (0=success, 1=error)
    """
    parser = _create_argument_parser()
    args = parser.parse_args()

    # Setup logging to capture controller messages
    logging.basicConfig(level=logging.INFO, format='%(message)s')

    try:
        if args.preview:
            _print_preview(args.preview, _parse_configuration(args.config), args.pollution)
            return 0

        if not args.snapshot:
            print("Error: No snapshot specified", file=sys.stderr)
            return 1
        if args.ticks < 0:
            print("Error: --ticks must be non-negative", file=sys.stderr)
            return 1

        counts = parse_count_list(args.count)
        controller = NetworkController.from_file(args.snapshot, AllocationRule(args.rule))
        if counts:
            controller.apply_counts_text("\n".join(f"{node_id}:{count}" for node_id, count in counts))
        for _ in range(args.ticks):
            controller.tick()

        _print_solution(controller)
        if args.dot:
            _output_graphviz(render_network(controller.get_graph(), controller.get_solution()).source, args.dot)
        if args.save:
            controller.save(args.save)

        return 0

    except (ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
