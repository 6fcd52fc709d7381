"""Common behaviour for tariff strategies."""

from .. import calculations
from ..errors import ConfigurationError, UnsupportedCombinationError
from ..models import BillInput, BillResult, CalculationClass, RateRow, TariffType


class TariffStrategy:
    """Computes a bill for one tariff type.

    Strategies hold no state: everything provider or voltage specific comes in
    through the RateRow, so one instance serves every request.
    """

    tariff_type: TariffType
    supported_classes: frozenset[CalculationClass] = frozenset()
    usage_type: type = object

    def calculate(self, bill: BillInput, rate: RateRow) -> BillResult:
        if bill.calculation_class not in self.supported_classes:
            alternatives = " or ".join(
                t.display for t in bill.calculation_class.tariff_types
            )
            raise UnsupportedCombinationError(
                f"{bill.calculation_class.label} does not support "
                f"{self.tariff_type.display} tariff. Use {alternatives} tariff."
            )
        if rate.tariff_type is not self.tariff_type:
            raise ConfigurationError(
                f"{type(self).__name__} cannot use {rate.tariff_type.value} rates"
            )
        if not isinstance(bill.usage, self.usage_type):
            raise ConfigurationError(
                f"{type(self).__name__} expects {self.usage_type.__name__}, "
                f"got {type(bill.usage).__name__}"
            )
        return self._calculate(bill, rate)

    def _calculate(self, bill: BillInput, rate: RateRow) -> BillResult:
        raise NotImplementedError

    def _energy_only_bill(self, bill: BillInput, rate: RateRow, energy_charge: float) -> BillResult:
        """Bill for classes without demand metering (type-2)."""
        return calculations.aggregate(
            bill.calculation_class,
            energy_charge=energy_charge,
            ft=calculations.ft_charge(bill.usage.total_kwh, bill.ft_rate_satang),
            service_charge=rate.service_charge,
            vat_rate=rate.vat_rate,
        )

    def _demand_bill(
        self,
        bill: BillInput,
        rate: RateRow,
        energy_charge: float,
        demand_charge: float,
    ) -> BillResult:
        """Bill for demand-metered classes, with minimum-bill and power factor."""
        return calculations.aggregate(
            bill.calculation_class,
            energy_charge=energy_charge,
            ft=calculations.ft_charge(bill.usage.total_kwh, bill.ft_rate_satang),
            service_charge=rate.service_charge,
            calculated_demand_charge=demand_charge,
            effective_demand=calculations.effective_demand_charge(
                demand_charge,
                bill.highest_demand_charge_last_12m,
                rate.minimum_bill_factor,
            ),
            pf=calculations.power_factor_charge(
                bill.peak_kvar,
                bill.usage.overall_peak_kw,
                rate.pf_threshold_ratio,
                rate.pf_penalty_rate,
            ),
            vat_rate=rate.vat_rate,
        )
