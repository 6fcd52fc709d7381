"""Request validation.

Checks run in a fixed order so the first problem reported is predictable:
body present, required fields present, tariff type, voltage level, usage
fields present, then numeric values.
"""

import math
from collections.abc import Mapping
from typing import Any

from .errors import (
    EmptyBodyError,
    InvalidCalculationClassError,
    InvalidProviderError,
    InvalidTariffTypeError,
    InvalidTypeError,
    InvalidVoltageLevelError,
    MissingFieldError,
    NegativeValueError,
)
from .models import (
    BillInput,
    CalculationClass,
    NormalUsage,
    Provider,
    TariffType,
    TodUsage,
    TouUsage,
    Usage,
    VoltageLevel,
)

BASE_FIELDS = ("tariffType", "voltageLevel", "ftRateSatang")
DEMAND_FIELDS = ("peakKvar", "highestDemandChargeLast12m")

USAGE_FIELDS: dict[TariffType, tuple[str, ...]] = {
    TariffType.NORMAL: ("peak_kw", "total_kwh"),
    TariffType.TOU: ("on_peak_kw", "on_peak_kwh", "off_peak_kw", "off_peak_kwh"),
    TariffType.TOD: ("on_peak_kw", "partial_peak_kw", "off_peak_kw", "total_kwh"),
}
# Type 2 has no demand meter
SMALL_USAGE_FIELDS: dict[TariffType, tuple[str, ...]] = {
    TariffType.NORMAL: ("total_kwh",),
    TariffType.TOU: ("on_peak_kwh", "off_peak_kwh"),
}


def required_fields(calculation_class: CalculationClass) -> tuple[str, ...]:
    """Top-level request fields for a class, in reporting order."""
    if calculation_class.is_demand_billed:
        return BASE_FIELDS + DEMAND_FIELDS + ("usage",)
    return BASE_FIELDS + ("usage",)


def required_usage_fields(
    calculation_class: CalculationClass, tariff_type: TariffType
) -> tuple[str, ...]:
    if calculation_class.is_demand_billed:
        return USAGE_FIELDS[tariff_type]
    return SMALL_USAGE_FIELDS[tariff_type]


def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def _quoted(values: list[str]) -> str:
    quoted = [f'"{v}"' for v in values]
    if len(quoted) <= 2:
        return " or ".join(quoted)
    return ", ".join(quoted[:-1]) + ", or " + quoted[-1]


def parse_number(value: Any, field: str, reject_negative: bool = True) -> float:
    """Parse a finite number from an int, float or numeric string."""
    if isinstance(value, bool):
        raise InvalidTypeError(field)
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            raise InvalidTypeError(field) from None
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            raise InvalidTypeError(field) from None
    else:
        raise InvalidTypeError(field)

    if not math.isfinite(number):
        raise InvalidTypeError(field)
    if reject_negative and number < 0:
        raise NegativeValueError(field)
    return number


def parse_provider(value: Provider | str) -> Provider:
    if isinstance(value, Provider):
        return value
    try:
        return Provider(str(value).lower())
    except ValueError:
        raise InvalidProviderError(
            f"Invalid provider: {value}. Must be \"mea\" or \"pea\"", "provider"
        ) from None


def parse_calculation_class(value: CalculationClass | str) -> CalculationClass:
    if isinstance(value, CalculationClass):
        return value
    try:
        return CalculationClass(str(value).lower())
    except ValueError:
        allowed = _quoted([c.value for c in CalculationClass])
        raise InvalidCalculationClassError(
            f"Invalid calculation type: {value}. Must be {allowed}", "calculationType"
        ) from None


def _parse_tariff_type(calculation_class: CalculationClass, value: Any) -> TariffType:
    allowed = calculation_class.tariff_types
    if isinstance(value, str) and value in {t.value for t in allowed}:
        return TariffType(value)
    raise InvalidTariffTypeError(
        f"Invalid tariff type for {calculation_class.label}. "
        f"Must be {_quoted([t.value for t in allowed])}, received: {value}",
        "tariffType",
    )


def _parse_voltage_level(
    provider: Provider,
    calculation_class: CalculationClass,
    tariff_type: TariffType,
    value: Any,
) -> VoltageLevel:
    allowed = provider.voltage_levels_for(calculation_class)
    if isinstance(value, str) and value in {v.value for v in allowed}:
        return VoltageLevel(value)
    raise InvalidVoltageLevelError(
        f"Invalid voltage level for {calculation_class.label} {tariff_type.value}. "
        f"Must be {_quoted([v.value for v in allowed])}, received: {value}",
        "voltageLevel",
    )


def _build_usage(
    calculation_class: CalculationClass,
    tariff_type: TariffType,
    usage: Mapping,
    reject_negative: bool,
) -> Usage:
    values = {
        name: parse_number(usage[name], f"usage.{name}", reject_negative)
        for name in required_usage_fields(calculation_class, tariff_type)
    }
    if tariff_type is TariffType.NORMAL:
        return NormalUsage(**values)
    if tariff_type is TariffType.TOU:
        return TouUsage(**values)
    return TodUsage(**values)


def validate(
    provider: Provider | str,
    calculation_class: CalculationClass | str,
    payload: Mapping | None,
    reject_negative: bool = True,
) -> BillInput:
    """Validate a raw request and convert it to a BillInput.

    Args:
        provider: 'mea' or 'pea' (usually from the route)
        calculation_class: 'type-2' .. 'type-5' (usually from the route)
        payload: The JSON-shaped request body
        reject_negative: Reject negative numbers for every numeric field

    Raises:
        ValidationError: The first problem found, see the module docstring
    """
    provider = parse_provider(provider)
    calculation_class = parse_calculation_class(calculation_class)

    if not payload or not isinstance(payload, Mapping):
        raise EmptyBodyError()

    for name in required_fields(calculation_class):
        if _is_missing(payload.get(name)):
            raise MissingFieldError(name)

    tariff_type = _parse_tariff_type(calculation_class, payload["tariffType"])
    voltage_level = _parse_voltage_level(
        provider, calculation_class, tariff_type, payload["voltageLevel"]
    )

    usage = payload["usage"]
    if not isinstance(usage, Mapping):
        raise InvalidTypeError("usage", "usage must be an object")
    for name in required_usage_fields(calculation_class, tariff_type):
        if _is_missing(usage.get(name)):
            raise MissingFieldError(f"usage.{name}")

    ft_rate = parse_number(payload["ftRateSatang"], "ftRateSatang", reject_negative)
    peak_kvar = None
    highest_demand = None
    if calculation_class.is_demand_billed:
        peak_kvar = parse_number(payload["peakKvar"], "peakKvar", reject_negative)
        highest_demand = parse_number(
            payload["highestDemandChargeLast12m"], "highestDemandChargeLast12m", reject_negative
        )

    return BillInput(
        provider=provider,
        calculation_class=calculation_class,
        tariff_type=tariff_type,
        voltage_level=voltage_level,
        ft_rate_satang=ft_rate,
        usage=_build_usage(calculation_class, tariff_type, usage, reject_negative),
        peak_kvar=peak_kvar,
        highest_demand_charge_last_12m=highest_demand,
    )
