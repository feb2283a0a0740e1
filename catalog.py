"""Static catalog of products, machine kinds and recipe templates.

All rates in the catalog are quantities per cycle; cycle times are in seconds.
"""

import json
import os
from collections import defaultdict
from dataclasses import dataclass, replace

# Quantity marker for a port whose value is computed from configuration
VARIABLE = "Variable"

# A port that exists but is not bound to any product yet
PLACEHOLDER_PRODUCT = "p_variableproduct"

_HERE = os.path.dirname(os.path.abspath(__file__))


def is_numeric(value) -> bool:
    """True for real numbers (bools excluded), False for markers and None."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass(frozen=True)
class Product:
    """a catalog product"""

    id: str
    name: str
    type: str
    price: float | None = None
    rp_multiplier: float | None = None

    @property
    def is_fluid(self) -> bool:
        return self.type == "fluid"


@dataclass(frozen=True)
class MachineKind:
    """a catalog machine kind, optionally tagged with a parametric behavior"""

    id: str
    name: str
    cost: float
    behavior: str | None = None


@dataclass(frozen=True)
class Power:
    """power draw that differs between peak and average"""

    max: float
    average: float


@dataclass(frozen=True)
class Ingredient:
    """one entry of a recipe input or output list"""

    product_id: str
    quantity: float | str
    temperature: float | None = None

    @property
    def is_variable(self) -> bool:
        return not is_numeric(self.quantity)

    @property
    def is_placeholder(self) -> bool:
        return self.product_id == PLACEHOLDER_PRODUCT

    def with_quantity(self, quantity) -> "Ingredient":
        return replace(self, quantity=quantity)


@dataclass(frozen=True)
class RecipeTemplate:
    """a catalog recipe, possibly with variable entries"""

    id: str
    name: str
    machine_id: str
    cycle_time: float | str
    power: float | Power | str
    pollution: float | str
    inputs: tuple[Ingredient, ...]
    outputs: tuple[Ingredient, ...]


with open(os.path.join(_HERE, "catalog.json"), "r", encoding="utf-8") as f:
    _CATALOG: dict[str, list[dict]] = json.load(f)


_PRODUCTS: dict[str, Product] = dict()
_MACHINES: dict[str, MachineKind] = dict()
_RECIPES: dict[str, RecipeTemplate] = dict()
_BY_MACHINE: dict[str, dict[str, RecipeTemplate]] = defaultdict(dict)


def _parse_power(raw) -> float | Power | str:
    """Convert a raw power entry into a number, a Power, or the VARIABLE marker.

    Precondition:
        raw is a number, a dict with "max" and "average", or a string

    Postcondition:
        dict entries become Power objects, everything else is returned as is

    Args:
        raw: power entry from the catalog json

    Returns:
        normalized power value
    """
    if isinstance(raw, dict):
        return Power(max=raw["max"], average=raw["average"])
    return raw


def _parse_ingredients(raw: list[dict]) -> tuple[Ingredient, ...]:
    """Convert raw port entries into a tuple of Ingredients.

    Precondition:
        every entry has "product_id" and "quantity" keys

    Postcondition:
        returns Ingredients in the original order
    """
    return tuple(
        Ingredient(entry["product_id"], entry["quantity"], entry.get("temperature"))
        for entry in raw
    )


def _create_recipe_template(raw: dict) -> RecipeTemplate:
    """Create a RecipeTemplate from its json entry.

    Precondition:
        raw has id, name, machine_id, cycle_time, power, pollution, inputs and outputs

    Postcondition:
        returns an immutable RecipeTemplate

    Raises:
        ValueError: if the recipe references an unknown machine
    """
    if raw["machine_id"] not in _MACHINES:
        raise ValueError(f"Recipe {raw['id']} references unknown machine {raw['machine_id']}")
    return RecipeTemplate(
        id=raw["id"],
        name=raw["name"],
        machine_id=raw["machine_id"],
        cycle_time=raw["cycle_time"],
        power=_parse_power(raw["power"]),
        pollution=raw["pollution"],
        inputs=_parse_ingredients(raw["inputs"]),
        outputs=_parse_ingredients(raw["outputs"]),
    )


# This is just to keep the global scope cleaner
def _populate_lookups():
    """Initialize all module-level lookup tables from the catalog data.

    Precondition:
        _CATALOG is loaded from catalog.json

    Postcondition:
        _PRODUCTS, _MACHINES, _RECIPES and _BY_MACHINE are populated
    """
    for raw in _CATALOG["products"]:
        _PRODUCTS[raw["id"]] = Product(
            raw["id"], raw["name"], raw["type"], raw.get("price"), raw.get("rp_multiplier")
        )
    for raw in _CATALOG["machines"]:
        _MACHINES[raw["id"]] = MachineKind(raw["id"], raw["name"], raw["cost"], raw.get("behavior"))
    for raw in _CATALOG["recipes"]:
        template = _create_recipe_template(raw)
        _RECIPES[template.id] = template
        _BY_MACHINE[template.machine_id][template.id] = template


_populate_lookups()


def get_product(product_id: str) -> Product:
    """Look up a product by id.

    Raises:
        ValueError: if the product is not in the catalog
    """
    try:
        return _PRODUCTS[product_id]
    except KeyError as exc:
        raise ValueError(f"Unknown product '{product_id}'") from exc


def get_machine_kind(machine_id: str) -> MachineKind:
    """Look up a machine kind by id.

    Raises:
        ValueError: if the machine kind is not in the catalog
    """
    try:
        return _MACHINES[machine_id]
    except KeyError as exc:
        raise ValueError(f"Unknown machine '{machine_id}'") from exc


def get_recipe_template(recipe_id: str) -> RecipeTemplate:
    """Look up a recipe template by id.

    Raises:
        ValueError: if the recipe is not in the catalog
    """
    try:
        return _RECIPES[recipe_id]
    except KeyError as exc:
        raise ValueError(f"Unknown recipe '{recipe_id}'") from exc


def find_product(product_id: str) -> Product | None:
    """Look up a product by id, returning None when it is not cataloged."""
    return _PRODUCTS.get(product_id)


def get_all_products() -> dict[str, Product]:
    return dict(_PRODUCTS)


def get_all_recipe_templates() -> dict[str, RecipeTemplate]:
    return dict(_RECIPES)


def get_recipes_for_machine(machine_id: str) -> dict[str, RecipeTemplate]:
    """Get every recipe template run by a machine kind, keyed by recipe id."""
    return dict(_BY_MACHINE.get(machine_id, {}))


@dataclass(frozen=True)
class ResolvedRecipe:
    """the concrete recipe of one node after configuration and environment are applied"""

    recipe_id: str
    machine_id: str
    cycle_time: float | str
    power: float | Power | str
    pollution: float | str
    inputs: tuple[Ingredient, ...]
    outputs: tuple[Ingredient, ...]

    @classmethod
    def from_template(cls, template: RecipeTemplate) -> "ResolvedRecipe":
        """Copy a template unchanged; the resolution of non-parametric machines."""
        return cls(
            recipe_id=template.id,
            machine_id=template.machine_id,
            cycle_time=template.cycle_time,
            power=template.power,
            pollution=template.pollution,
            inputs=template.inputs,
            outputs=template.outputs,
        )
