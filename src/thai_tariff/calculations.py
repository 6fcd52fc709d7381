"""Charge arithmetic shared by every tariff strategy.

Amounts stay as unrounded floats throughout; rounding belongs to presentation.
"""

import math

from .models import BillResult, CalculationClass, EnergyTier

VAT_RATE = 0.07
PF_THRESHOLD_RATIO = 0.6197
PF_PENALTY_RATE = 56.07  # baht per kVAR
MINIMUM_BILL_FACTOR = 0.70
SATANG_PER_BAHT = 100


def tiered_energy_charge(total_kwh: float, tiers: tuple[EnergyTier, ...]) -> float:
    """Price consumption through ascending energy tiers.

    Each tier covers the kWh between its threshold and the next tier's; the
    last tier is unbounded and absorbs whatever remains.
    """
    charge = 0.0
    remaining = total_kwh
    for i, tier in enumerate(tiers):
        if remaining <= 0:
            break
        if i + 1 < len(tiers):
            width = tiers[i + 1].threshold_kwh - tier.threshold_kwh
            kwh = min(remaining, width)
        else:
            kwh = remaining
        charge += kwh * tier.rate
        remaining -= kwh
    return charge


def power_factor_charge(
    peak_kvar: float | None,
    overall_peak_kw: float | None,
    threshold_ratio: float = PF_THRESHOLD_RATIO,
    penalty_rate: float = PF_PENALTY_RATE,
) -> float:
    """Penalty for reactive power beyond the allowance for the peak demand.

    Excess kVAR is billed in whole units, rounding half up.
    """
    if peak_kvar is None:
        return 0.0
    excess_kvar = max(0.0, peak_kvar - (overall_peak_kw or 0.0) * threshold_ratio)
    return math.floor(excess_kvar + 0.5) * penalty_rate


def effective_demand_charge(
    calculated: float,
    highest_last_12m: float | None,
    minimum_bill_factor: float = MINIMUM_BILL_FACTOR,
) -> float:
    """Apply the minimum-bill floor from the trailing 12-month peak demand charge."""
    if highest_last_12m is None:
        return calculated
    return max(calculated, highest_last_12m * minimum_bill_factor)


def ft_charge(total_kwh: float, ft_rate_satang: float) -> float:
    """Fuel adjustment charge. The FT rate is quoted in satang/kWh."""
    return total_kwh * (ft_rate_satang / SATANG_PER_BAHT)


def vat(amount: float, rate: float = VAT_RATE) -> float:
    return amount * rate


def aggregate(
    calculation_class: CalculationClass,
    energy_charge: float,
    ft: float,
    service_charge: float | None = None,
    calculated_demand_charge: float | None = None,
    effective_demand: float | None = None,
    pf: float | None = None,
    vat_rate: float = VAT_RATE,
) -> BillResult:
    """Sum itemized charges into a bill.

    subTotal = effective demand + energy + power factor + service + FT,
    and the total adds VAT on the subTotal.
    """
    base_tariff = (effective_demand or 0.0) + energy_charge + (pf or 0.0) + (service_charge or 0.0)
    sub_total = base_tariff + ft
    vat_amount = vat(sub_total, vat_rate)
    return BillResult(
        calculation_class=calculation_class,
        energy_charge=energy_charge,
        ft_charge=ft,
        base_tariff=base_tariff,
        sub_total=sub_total,
        vat=vat_amount,
        total=sub_total + vat_amount,
        service_charge=service_charge,
        calculated_demand_charge=calculated_demand_charge,
        effective_demand_charge=effective_demand,
        pf_charge=pf,
    )
