"""Normal (non time-differentiated) tariff."""

from ..calculations import tiered_energy_charge
from ..models import BillInput, BillResult, CalculationClass, NormalUsage, RateRow, TariffType
from .base import TariffStrategy


class NormalStrategy(TariffStrategy):
    """Tiered energy for type-2; peak demand plus flat energy for type-3 and type-5."""

    tariff_type = TariffType.NORMAL
    supported_classes = frozenset(
        {CalculationClass.TYPE_2, CalculationClass.TYPE_3, CalculationClass.TYPE_5}
    )
    usage_type = NormalUsage

    def _calculate(self, bill: BillInput, rate: RateRow) -> BillResult:
        usage = bill.usage
        energy_charge = tiered_energy_charge(usage.total_kwh, rate.energy_tiers)

        if not bill.calculation_class.is_demand_billed:
            return self._energy_only_bill(bill, rate, energy_charge)

        demand_charge = (usage.peak_kw or 0.0) * rate.demand_rate
        return self._demand_bill(bill, rate, energy_charge, demand_charge)
