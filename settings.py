"""Per-machine configuration variants.

Every parametric machine behavior has one frozen settings class. A node stores
one of these (or None for plain machines); persisted configurations round-trip
through settings_to_dict / settings_from_dict.
"""

import dataclasses
from dataclasses import dataclass
from typing import ClassVar

import assembler
import drill
import firebox
import heat
import tree_farm
from catalog import get_product


@dataclass(frozen=True)
class DrillSettings:
    kind: ClassVar[str] = "drill"
    drill_head: str | None = None
    consumable: str = "none"
    machine_oil: bool = False
    depth: int | None = None


@dataclass(frozen=True)
class AssemblerSettings:
    kind: ClassVar[str] = "assembler"
    outer_stage: int = 1
    inner_stage: int = 2
    machine_oil: bool = False
    tick_delay: float = 0


@dataclass(frozen=True)
class TreeFarmSettings:
    kind: ClassVar[str] = "tree_farm"
    trees: int = tree_farm.DEFAULT_TREES
    harvesters: int = tree_farm.DEFAULT_HARVESTERS
    sprinklers: int = tree_farm.DEFAULT_SPRINKLERS
    outputs: int = tree_farm.DEFAULT_OUTPUTS
    controller: int = tree_farm.DEFAULT_CONTROLLER


@dataclass(frozen=True)
class FireboxSettings:
    kind: ClassVar[str] = "firebox"
    fuel: str | None = firebox.DEFAULT_FUEL


@dataclass(frozen=True)
class ChemicalPlantSettings:
    kind: ClassVar[str] = "chemical_plant"
    speed: float = 100
    efficiency: float = 100


@dataclass(frozen=True)
class BoilerSettings:
    kind: ClassVar[str] = "boiler"
    heat_loss: float = heat.HEAT_SOURCES["m_boiler"].default_heat_loss


@dataclass(frozen=True)
class HeaterSettings:
    kind: ClassVar[str] = "water_heater"
    temperature: float = heat.DEFAULT_HEATER_TEMPERATURE


@dataclass(frozen=True)
class FluidDisposalSettings:
    kind: ClassVar[str] = "fluid_disposal"
    fluids: tuple[str | None, ...] = ()


@dataclass(frozen=True)
class WasteFacilitySettings:
    kind: ClassVar[str] = "waste_facility"
    item_product: str | None = None
    fluid_product: str | None = None
    item_flow: float = 0
    fluid_flow: float = 0


Settings = (
    DrillSettings
    | AssemblerSettings
    | TreeFarmSettings
    | FireboxSettings
    | ChemicalPlantSettings
    | BoilerSettings
    | HeaterSettings
    | FluidDisposalSettings
    | WasteFacilitySettings
)

_SETTINGS_BY_KIND = {
    cls.kind: cls
    for cls in (
        DrillSettings,
        AssemblerSettings,
        TreeFarmSettings,
        FireboxSettings,
        ChemicalPlantSettings,
        BoilerSettings,
        HeaterSettings,
        FluidDisposalSettings,
        WasteFacilitySettings,
    )
}

# machine behavior tag -> settings class
_SETTINGS_BY_BEHAVIOR = {
    "drill": DrillSettings,
    "assembler": AssemblerSettings,
    "tree_farm": TreeFarmSettings,
    "firebox": FireboxSettings,
    "chemical_plant": ChemicalPlantSettings,
    "boiler": BoilerSettings,
    "water_heater": HeaterSettings,
    "liquid_burner": FluidDisposalSettings,
    "liquid_dump": FluidDisposalSettings,
    "waste_facility": WasteFacilitySettings,
}

# kinds whose last used configuration seeds new nodes
REMEMBERED_KINDS = frozenset({"drill", "assembler", "tree_farm", "firebox"})


def settings_class_for(behavior: str | None):
    """Settings class used by a machine behavior, None for machines without settings."""
    return _SETTINGS_BY_BEHAVIOR.get(behavior)


def default_settings(behavior: str | None) -> Settings | None:
    """Fresh default configuration for a machine behavior."""
    cls = settings_class_for(behavior)
    return cls() if cls else None


def _check_fields_in_range(settings: Settings) -> list[str]:
    """Collect validation problems of a settings object.

    Precondition:
        settings is one of the Settings classes

    Postcondition:
        returns an empty list for valid settings
        otherwise one message per problem
    """
    problems = []
    if isinstance(settings, DrillSettings):
        if settings.drill_head is not None and settings.drill_head not in drill.DRILL_HEADS:
            problems.append(f"unknown drill head '{settings.drill_head}'")
        if settings.consumable not in drill.CONSUMABLES:
            problems.append(f"unknown consumable '{settings.consumable}'")
        if settings.depth is not None and settings.depth not in drill.get_available_depths():
            problems.append(f"unsupported depth {settings.depth}")
    elif isinstance(settings, AssemblerSettings):
        if not assembler.is_valid_stage(settings.outer_stage, settings.inner_stage):
            problems.append(f"invalid microchip stage {settings.outer_stage}x{settings.inner_stage}")
        if settings.tick_delay < 0:
            problems.append("tick delay must be non-negative")
    elif isinstance(settings, TreeFarmSettings):
        if invalid := [name for name in ("trees", "harvesters", "sprinklers", "outputs", "controller")
                       if getattr(settings, name) < 0]:
            problems.append(f"negative tree farm counts: {', '.join(invalid)}")
    elif isinstance(settings, FireboxSettings):
        if settings.fuel is not None and settings.fuel not in firebox.FUEL_ENERGY:
            problems.append(f"unknown fuel '{settings.fuel}'")
    elif isinstance(settings, HeaterSettings):
        if heat.heater_power(settings.temperature) is None:
            problems.append(f"unsupported heater temperature {settings.temperature}")
    elif isinstance(settings, FluidDisposalSettings):
        for product_id in settings.fluids:
            if product_id is not None and not get_product(product_id).is_fluid:
                problems.append(f"'{product_id}' is not a fluid")
    elif isinstance(settings, WasteFacilitySettings):
        if settings.item_flow < 0 or settings.fluid_flow < 0:
            problems.append("flows must be non-negative")
    return problems


def validate_settings(settings: Settings | None, behavior: str | None) -> None:
    """Check that a configuration fits a machine behavior.

    Precondition:
        behavior is the machine kind's behavior tag (or None)

    Postcondition:
        returns None if the settings are acceptable

    Args:
        settings: configuration to check
        behavior: behavior tag of the node's machine

    Raises:
        ValueError: if the settings belong to another behavior or hold invalid values
    """
    expected = settings_class_for(behavior)
    if settings is None:
        return
    if expected is None or not isinstance(settings, expected):
        raise ValueError(f"{type(settings).__name__} cannot configure a '{behavior}' machine")
    if problems := _check_fields_in_range(settings):
        raise ValueError(f"Invalid {settings.kind} settings: {'; '.join(problems)}")


def settings_to_dict(settings: Settings | None) -> dict | None:
    if settings is None:
        return None
    data = dataclasses.asdict(settings)
    if isinstance(settings, FluidDisposalSettings):
        data["fluids"] = list(settings.fluids)
    return {"kind": settings.kind, **data}


def settings_from_dict(data: dict | None) -> Settings | None:
    """Rebuild a settings object from its persisted form.

    Precondition:
        data is None or a dict with a "kind" key

    Postcondition:
        missing fields take their defaults
        the returned settings passed field validation

    Args:
        data: persisted configuration

    Returns:
        settings object, or None for no configuration

    Raises:
        ValueError: if the kind or any field is unknown or invalid
    """
    if data is None:
        return None
    fields = dict(data)
    kind = fields.pop("kind", None)
    if (cls := _SETTINGS_BY_KIND.get(kind)) is None:
        raise ValueError(f"Unknown configuration kind '{kind}'")
    known = {f.name for f in dataclasses.fields(cls)}
    if unknown := sorted(set(fields) - known):
        raise ValueError(f"Unknown {kind} configuration fields: {', '.join(unknown)}")
    if "fluids" in fields:
        fields["fluids"] = tuple(fields["fluids"])
    try:
        settings = cls(**fields)
        problems = _check_fields_in_range(settings)
    except TypeError as exc:
        raise ValueError(f"Malformed {kind} configuration: {exc}") from exc
    if problems:
        raise ValueError(f"Invalid {kind} settings: {'; '.join(problems)}")
    return settings
