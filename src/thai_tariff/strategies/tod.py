"""Time-of-day tariff for large general service."""

from ..calculations import tiered_energy_charge
from ..models import BillInput, BillResult, CalculationClass, RateRow, TariffType, TodUsage
from .base import TariffStrategy


class TodStrategy(TariffStrategy):
    """Demand priced over on-peak, partial-peak and off-peak; flat energy."""

    tariff_type = TariffType.TOD
    supported_classes = frozenset({CalculationClass.TYPE_4})
    usage_type = TodUsage

    def _calculate(self, bill: BillInput, rate: RateRow) -> BillResult:
        usage = bill.usage
        demand_charge = (
            usage.on_peak_kw * rate.on_peak_demand_rate
            + usage.partial_peak_kw * rate.partial_peak_demand_rate
            + usage.off_peak_kw * rate.off_peak_demand_rate
        )
        energy_charge = tiered_energy_charge(usage.total_kwh, rate.energy_tiers)
        return self._demand_bill(bill, rate, energy_charge, demand_charge)
