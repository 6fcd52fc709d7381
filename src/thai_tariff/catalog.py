"""Rate catalog loading, lookup and tariff plan naming."""

import logging
import re
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path

import yaml

from .errors import CatalogError, InvalidPlanNameError, RateNotFoundError
from .models import (
    CalculationClass,
    EnergyTier,
    Provider,
    RateRow,
    TariffType,
    VoltageLevel,
)

logger = logging.getLogger(__name__)

DEFAULT_RATES_PATH = Path(__file__).parent / "data" / "rates.yaml"

RateKey = tuple[Provider, CalculationClass, TariffType, VoltageLevel]

# Row keys in rates.yaml -> RateRow fields
RATE_FIELDS = {
    "service_charge": "service_charge",
    "energy_on": "on_peak_energy_rate",
    "energy_off": "off_peak_energy_rate",
    "demand": "demand_rate",
    "demand_on": "on_peak_demand_rate",
    "demand_partial": "partial_peak_demand_rate",
    "demand_off": "off_peak_demand_rate",
}
DEFAULT_FIELDS = ("vat_rate", "pf_threshold_ratio", "pf_penalty_rate", "minimum_bill_factor")

PLAN_NAME_RE = re.compile(r"^(MEA|PEA)_(\d)\.(\d)\.(\d)_([a-z]+)_(normal|TOU|TOD)$")


@dataclass(frozen=True, eq=False)
class RateCatalog:
    """Immutable set of rate rows keyed by (provider, class, tariff, voltage)."""

    rows: dict[RateKey, RateRow] = field(default_factory=dict)

    def lookup(
        self,
        provider: Provider,
        calculation_class: CalculationClass,
        tariff_type: TariffType,
        voltage_level: VoltageLevel,
    ) -> RateRow:
        """Get the rate row for a combination, or raise RateNotFoundError."""
        key = (provider, calculation_class, tariff_type, voltage_level)
        try:
            return self.rows[key]
        except KeyError:
            raise RateNotFoundError(
                f"Rates not found for {provider.value.upper()} {calculation_class.value}, "
                f"{tariff_type.value}, {voltage_level.value}"
            ) from None

    def plans(
        self,
        provider: Provider | None = None,
        calculation_class: CalculationClass | None = None,
    ) -> list[str]:
        """List plan names in the catalog, optionally filtered."""
        names = [
            plan_name(*key)
            for key in self.rows
            if (provider is None or key[0] is provider)
            and (calculation_class is None or key[1] is calculation_class)
        ]
        return sorted(names)


def _parse_tiers(raw: list, where: str) -> tuple[EnergyTier, ...]:
    tiers = tuple(EnergyTier(threshold_kwh=float(t), rate=float(r)) for t, r in raw)
    if not tiers or tiers[0].threshold_kwh != 0:
        raise CatalogError(f"{where}: energy tiers must start at 0 kWh")
    for lower, upper in zip(tiers, tiers[1:]):
        if upper.threshold_kwh <= lower.threshold_kwh:
            raise CatalogError(f"{where}: energy tier thresholds must be strictly increasing")
    return tiers


def _parse_row(
    key: RateKey, raw: dict, defaults: dict, provider_service_charge: float | None
) -> RateRow:
    provider, calc_class, tariff_type, voltage = key
    where = plan_name(*key)

    values = {name: float(defaults[name]) for name in DEFAULT_FIELDS if name in defaults}
    for yaml_key, row_field in RATE_FIELDS.items():
        if yaml_key in raw:
            values[row_field] = float(raw[yaml_key])
    for name in DEFAULT_FIELDS:
        if name in raw:
            values[name] = float(raw[name])

    if "energy_tiers" in raw:
        values["energy_tiers"] = _parse_tiers(raw["energy_tiers"], where)
    elif "energy" in raw:
        values["energy_tiers"] = (EnergyTier(threshold_kwh=0.0, rate=float(raw["energy"])),)
    elif tariff_type is not TariffType.TOU:
        raise CatalogError(f"{where}: missing energy rate")

    if "service_charge" not in values:
        if provider_service_charge is None:
            raise CatalogError(f"{where}: missing service charge")
        values["service_charge"] = float(provider_service_charge)

    return RateRow(
        provider=provider,
        calculation_class=calc_class,
        tariff_type=tariff_type,
        voltage_level=voltage,
        **values,
    )


def _enum(enum_cls, value: str, where: str):
    try:
        return enum_cls(value)
    except ValueError:
        raise CatalogError(f"Unknown {enum_cls.__name__} {value!r} in {where}") from None


def load_catalog(config_path: Path | None = None) -> RateCatalog:
    """Load the rate catalog from a YAML file."""
    path = config_path or DEFAULT_RATES_PATH
    with open(path) as f:
        data = yaml.safe_load(f)

    if not isinstance(data, dict) or "providers" not in data:
        raise CatalogError(f"{path}: expected a 'providers' mapping")

    defaults = data.get("defaults", {})
    rows: dict[RateKey, RateRow] = {}

    for provider_key, provider_data in data["providers"].items():
        provider = _enum(Provider, provider_key, str(path))
        for class_key, tariffs in provider_data.get("classes", {}).items():
            calc_class = _enum(CalculationClass, class_key, provider_key)
            for tariff_key, voltages in tariffs.items():
                tariff_type = _enum(TariffType, tariff_key, f"{provider_key} {class_key}")
                if tariff_type not in calc_class.tariff_types:
                    raise CatalogError(
                        f"{calc_class.label} does not offer {tariff_key} tariff ({provider_key})"
                    )
                for voltage_key, raw in voltages.items():
                    voltage = _enum(VoltageLevel, voltage_key, f"{provider_key} {class_key}")
                    if voltage not in provider.voltage_levels:
                        raise CatalogError(
                            f"{voltage_key} is not a {provider_key.upper()} voltage level"
                        )
                    if voltage not in provider.voltage_levels_for(calc_class):
                        raise CatalogError(
                            f"{calc_class.label} is not supplied at {voltage_key} ({provider_key})"
                        )
                    key = (provider, calc_class, tariff_type, voltage)
                    rows[key] = _parse_row(
                        key, raw, defaults, provider_data.get("service_charge")
                    )

    logger.debug("Loaded %d rate rows from %s", len(rows), path)
    return RateCatalog(rows=rows)


@lru_cache(maxsize=None)
def get_catalog(config_path: Path | None = None) -> RateCatalog:
    """Load a catalog once per process and share it."""
    return load_catalog(config_path)


def plan_name(
    provider: Provider,
    calculation_class: CalculationClass,
    tariff_type: TariffType,
    voltage_level: VoltageLevel,
) -> str:
    """Build a plan name such as 'MEA_3.1.3_medium_normal'.

    The middle digit is 1 for normal/TOD and 2 for TOU; the last digit is the
    voltage tier counted from the highest.
    """
    tariff_index = 2 if tariff_type is TariffType.TOU else 1
    voltage_index = provider.voltage_levels.index(voltage_level) + 1
    return (
        f"{provider.value.upper()}_{calculation_class.number}.{tariff_index}.{voltage_index}"
        f"_{calculation_class.size}_{tariff_type.display}"
    )


def parse_plan_name(name: str) -> RateKey:
    """Resolve a plan name to its (provider, class, tariff, voltage) key."""
    match = PLAN_NAME_RE.match(name or "")
    if not match:
        raise InvalidPlanNameError(
            f"Invalid tariff plan name: {name}. Expected format: MEA_X.X.X_size_tariff "
            "or PEA_X.X.X_size_tariff"
        )

    provider_str, class_num, tariff_index, voltage_index, size, tariff_str = match.groups()
    provider = Provider(provider_str.lower())
    try:
        calc_class = CalculationClass(f"type-{class_num}")
        voltage = provider.voltage_levels[int(voltage_index) - 1]
    except (ValueError, IndexError):
        raise InvalidPlanNameError(f"Unknown tariff plan: {name}") from None

    tariff_type = TariffType(tariff_str.lower())
    key = (provider, calc_class, tariff_type, voltage)
    # The name must be canonical so that index and suffix cannot disagree
    if (
        plan_name(*key) != name
        or tariff_type not in calc_class.tariff_types
        or voltage not in provider.voltage_levels_for(calc_class)
    ):
        raise InvalidPlanNameError(f"Unknown tariff plan: {name}")
    return key


def lookup(
    provider: Provider,
    calculation_class: CalculationClass,
    tariff_type: TariffType,
    voltage_level: VoltageLevel,
) -> RateRow:
    """Look up a rate row in the default catalog."""
    return get_catalog().lookup(provider, calculation_class, tariff_type, voltage_level)


def available_plans(
    provider: Provider | None = None,
    calculation_class: CalculationClass | None = None,
) -> list[str]:
    """List plan names in the default catalog."""
    return get_catalog().plans(provider, calculation_class)
