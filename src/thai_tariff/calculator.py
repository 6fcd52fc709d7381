"""Bill calculation entry points: validate, select, look up rates, compute."""

import logging
from collections.abc import Mapping
from typing import Any

from . import catalog as rate_catalog
from .catalog import RateCatalog
from .config import Settings, load_settings
from .errors import (
    ConfigurationError,
    EmptyBodyError,
    InvalidTariffTypeError,
    InvalidVoltageLevelError,
    ValidationError,
)
from .models import BillResult, CalculationClass, Provider
from .selector import select
from .validation import validate

logger = logging.getLogger(__name__)


def _resolve_catalog(catalog: RateCatalog | None, settings: Settings) -> RateCatalog:
    if catalog is not None:
        return catalog
    return rate_catalog.get_catalog(settings.rates_path)


def calculate_bill(
    provider: Provider | str,
    calculation_class: CalculationClass | str,
    payload: Mapping[str, Any] | None,
    catalog: RateCatalog | None = None,
    settings: Settings | None = None,
) -> BillResult:
    """Calculate an itemized bill for one request.

    Args:
        provider: 'mea' or 'pea'
        calculation_class: 'type-2' .. 'type-5'
        payload: Request body with tariffType, voltageLevel, ftRateSatang,
            peakKvar, highestDemandChargeLast12m and usage
        catalog: Rate catalog to use (defaults to the shared catalog)
        settings: Engine settings (defaults to the environment)

    Returns:
        BillResult with unrounded amounts

    Raises:
        ValidationError: The request is invalid; nothing was calculated
        ConfigurationError: The catalog has no rates for a valid request
    """
    settings = settings or load_settings()

    try:
        bill = validate(
            provider, calculation_class, payload, reject_negative=settings.reject_negative
        )
        strategy = select(bill.provider, bill.calculation_class, bill.tariff_type)
    except ValidationError as e:
        logger.info("Rejected %s %s request: %s", provider, calculation_class, e.message)
        raise

    logger.debug(
        "Calculating %s %s %s %s",
        bill.provider.value,
        bill.calculation_class.value,
        bill.tariff_type.value,
        bill.voltage_level.value,
    )

    try:
        rate = _resolve_catalog(catalog, settings).lookup(
            bill.provider, bill.calculation_class, bill.tariff_type, bill.voltage_level
        )
        return strategy.calculate(bill, rate)
    except ConfigurationError:
        logger.exception(
            "Rate catalog cannot serve a validated request for %s %s",
            bill.provider.value,
            bill.calculation_class.value,
        )
        raise


def calculate_plan(
    plan: str,
    payload: Mapping[str, Any] | None,
    catalog: RateCatalog | None = None,
    settings: Settings | None = None,
) -> BillResult:
    """Calculate a bill for a named tariff plan such as 'PEA_4.1.1_large_TOD'.

    The plan fixes provider, class, tariff type and voltage level; the payload
    may repeat tariffType and voltageLevel but must not contradict them.
    """
    provider, calc_class, tariff_type, voltage = rate_catalog.parse_plan_name(plan)
    if not payload or not isinstance(payload, Mapping):
        raise EmptyBodyError()
    body = dict(payload)

    if body.get("tariffType") not in (None, "", tariff_type.value):
        raise InvalidTariffTypeError(
            f"Tariff type {body['tariffType']} does not match plan {plan} ({tariff_type.value})",
            "tariffType",
        )
    if body.get("voltageLevel") not in (None, "", voltage.value):
        raise InvalidVoltageLevelError(
            f"Voltage level {body['voltageLevel']} does not match plan {plan} ({voltage.value})",
            "voltageLevel",
        )

    body["tariffType"] = tariff_type.value
    body["voltageLevel"] = voltage.value
    return calculate_bill(provider, calc_class, body, catalog=catalog, settings=settings)


def envelope(result: BillResult, decimals: int | None = None) -> dict[str, Any]:
    """Wrap a result as {'success': True, 'data': {...}}."""
    return {"success": True, "data": result.to_dict(decimals)}
