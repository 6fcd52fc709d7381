"""Time-of-use tariff."""

from ..models import BillInput, BillResult, CalculationClass, RateRow, TariffType, TouUsage
from .base import TariffStrategy


class TouStrategy(TariffStrategy):
    """On-peak and off-peak energy rates; only on-peak demand is billed."""

    tariff_type = TariffType.TOU
    supported_classes = frozenset(CalculationClass)
    usage_type = TouUsage

    def _calculate(self, bill: BillInput, rate: RateRow) -> BillResult:
        usage = bill.usage
        energy_charge = (
            usage.on_peak_kwh * rate.on_peak_energy_rate
            + usage.off_peak_kwh * rate.off_peak_energy_rate
        )

        if not bill.calculation_class.is_demand_billed:
            return self._energy_only_bill(bill, rate, energy_charge)

        demand_charge = (usage.on_peak_kw or 0.0) * rate.on_peak_demand_rate
        return self._demand_bill(bill, rate, energy_charge, demand_charge)
