"""Machine count overrides written as "node_id:count" text.

Counts come from the CLI (--count, one override per argument) and from the
controller's count text (one override per line, # comments allowed). Node
ids may contain colons, so the count is taken after the last one.
"""

import math


def parse_node_count(text: str) -> tuple[str, float]:
    """Parse one "node_id:count" override.

    Precondition:
        text is a string

    Postcondition:
        returns (node_id, count) with node_id stripped and count a finite float >= 0

    Args:
        text: override such as "r_water_pump_1:2.5"

    Returns:
        (node_id, count)

    Raises:
        ValueError: if there is no colon, the node id is empty, or the count
            is not a finite non-negative number
    """
    node_id, colon, count_text = text.rpartition(":")
    if not colon:
        raise ValueError(f"Invalid format: '{text}'. Expected 'Node:Count'")
    node_id = node_id.strip()
    if not node_id:
        raise ValueError(f"Invalid format: '{text}'. Node id is empty")
    try:
        count = float(count_text)
    except ValueError as exc:
        raise ValueError(f"Invalid machine count '{count_text.strip()}' for {node_id}. Must be a number.") from exc
    if not math.isfinite(count):
        raise ValueError(f"Invalid machine count '{count_text.strip()}' for {node_id}. Must be finite.")
    if count < 0:
        raise ValueError(f"Invalid machine count '{count_text.strip()}' for {node_id}. Must be non-negative.")
    return node_id, count


def parse_count_lines(text: str) -> list[tuple[str, float]]:
    """Parse one override per line, skipping blank lines and # comments.

    Raises:
        ValueError: naming the 1-based line of the first malformed override
    """
    counts = []
    for number, line in enumerate(text.splitlines(), start=1):
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        try:
            counts.append(parse_node_count(line))
        except ValueError as exc:
            raise ValueError(f"Line {number}: {exc}") from exc
    return counts
