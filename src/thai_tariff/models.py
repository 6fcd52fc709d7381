"""Data models for tariff rates, meter usage and bills."""

from dataclasses import dataclass
from enum import Enum


class Provider(str, Enum):
    """Electricity distribution authority."""

    MEA = "mea"  # Metropolitan Electricity Authority
    PEA = "pea"  # Provincial Electricity Authority

    @property
    def voltage_levels(self) -> tuple["VoltageLevel", ...]:
        """Legal voltage levels, highest first."""
        return VOLTAGE_LEVELS[self]

    def voltage_levels_for(self, calculation_class: "CalculationClass") -> tuple["VoltageLevel", ...]:
        """Legal voltage levels for a customer class, highest first."""
        # Small general service is not supplied at transmission voltage
        if calculation_class is CalculationClass.TYPE_2:
            return self.voltage_levels[1:]
        return self.voltage_levels


class CalculationClass(str, Enum):
    """Customer class the bill is calculated for."""

    TYPE_2 = "type-2"  # small general service
    TYPE_3 = "type-3"  # medium general service
    TYPE_4 = "type-4"  # large general service
    TYPE_5 = "type-5"  # specific business

    @property
    def number(self) -> int:
        return int(self.value.split("-")[1])

    @property
    def label(self) -> str:
        """Human readable name, e.g. 'Type 4'."""
        return f"Type {self.number}"

    @property
    def size(self) -> str:
        return CLASS_SIZES[self]

    @property
    def is_demand_billed(self) -> bool:
        return self is not CalculationClass.TYPE_2

    @property
    def tariff_types(self) -> tuple["TariffType", ...]:
        return COMPATIBLE_TARIFFS[self]


class TariffType(str, Enum):
    """Billing scheme."""

    NORMAL = "normal"
    TOU = "tou"  # time of use: on-peak / off-peak
    TOD = "tod"  # time of day: on-peak / partial-peak / off-peak demand

    @property
    def display(self) -> str:
        return "normal" if self is TariffType.NORMAL else self.value.upper()


class VoltageLevel(str, Enum):
    """Supply voltage tier. MEA and PEA share only the top tier."""

    HIGH = ">=69kV"
    MEA_MEDIUM = "12-24kV"
    MEA_LOW = "<12kV"
    PEA_MEDIUM = "22-33kV"
    PEA_LOW = "<22kV"


VOLTAGE_LEVELS: dict[Provider, tuple[VoltageLevel, ...]] = {
    Provider.MEA: (VoltageLevel.HIGH, VoltageLevel.MEA_MEDIUM, VoltageLevel.MEA_LOW),
    Provider.PEA: (VoltageLevel.HIGH, VoltageLevel.PEA_MEDIUM, VoltageLevel.PEA_LOW),
}

COMPATIBLE_TARIFFS: dict[CalculationClass, tuple[TariffType, ...]] = {
    CalculationClass.TYPE_2: (TariffType.NORMAL, TariffType.TOU),
    CalculationClass.TYPE_3: (TariffType.NORMAL, TariffType.TOU),
    CalculationClass.TYPE_4: (TariffType.TOD, TariffType.TOU),
    CalculationClass.TYPE_5: (TariffType.NORMAL, TariffType.TOU),
}

CLASS_SIZES: dict[CalculationClass, str] = {
    CalculationClass.TYPE_2: "small",
    CalculationClass.TYPE_3: "medium",
    CalculationClass.TYPE_4: "large",
    CalculationClass.TYPE_5: "specific",
}


@dataclass(frozen=True)
class EnergyTier:
    """An energy price that applies from threshold_kwh upwards."""

    threshold_kwh: float
    rate: float  # baht/kWh


@dataclass(frozen=True)
class RateRow:
    """Tariff constants for one (provider, class, tariff, voltage) combination.

    Normal and TOD rows price energy through ``energy_tiers``; a flat rate is a
    single tier starting at 0 kWh. TOU rows use the on/off-peak energy rates.
    """

    provider: Provider
    calculation_class: CalculationClass
    tariff_type: TariffType
    voltage_level: VoltageLevel
    service_charge: float  # baht/month
    energy_tiers: tuple[EnergyTier, ...] = ()
    on_peak_energy_rate: float = 0.0
    off_peak_energy_rate: float = 0.0
    demand_rate: float = 0.0  # baht/kW, normal tariff
    on_peak_demand_rate: float = 0.0
    partial_peak_demand_rate: float = 0.0
    off_peak_demand_rate: float = 0.0
    pf_threshold_ratio: float = 0.6197  # kVAR allowed per kW (power factor 0.85)
    pf_penalty_rate: float = 56.07  # baht per excess kVAR
    minimum_bill_factor: float = 0.70
    vat_rate: float = 0.07


@dataclass(frozen=True)
class NormalUsage:
    """Meter readings for a normal tariff."""

    total_kwh: float
    peak_kw: float | None = None

    @property
    def overall_peak_kw(self) -> float | None:
        return self.peak_kw


@dataclass(frozen=True)
class TouUsage:
    """Meter readings for a time-of-use tariff."""

    on_peak_kwh: float
    off_peak_kwh: float
    on_peak_kw: float | None = None
    off_peak_kw: float | None = None

    @property
    def total_kwh(self) -> float:
        return self.on_peak_kwh + self.off_peak_kwh

    @property
    def overall_peak_kw(self) -> float | None:
        readings = [kw for kw in (self.on_peak_kw, self.off_peak_kw) if kw is not None]
        return max(readings) if readings else None


@dataclass(frozen=True)
class TodUsage:
    """Meter readings for a time-of-day tariff."""

    on_peak_kw: float
    partial_peak_kw: float
    off_peak_kw: float
    total_kwh: float

    @property
    def overall_peak_kw(self) -> float:
        return max(self.on_peak_kw, self.partial_peak_kw, self.off_peak_kw)


Usage = NormalUsage | TouUsage | TodUsage


@dataclass(frozen=True)
class BillInput:
    """A validated calculation request."""

    provider: Provider
    calculation_class: CalculationClass
    tariff_type: TariffType
    voltage_level: VoltageLevel
    ft_rate_satang: float  # satang/kWh
    usage: Usage
    peak_kvar: float | None = None
    highest_demand_charge_last_12m: float | None = None


@dataclass(frozen=True)
class BillResult:
    """An itemized bill. Amounts are unrounded baht."""

    calculation_class: CalculationClass
    energy_charge: float
    ft_charge: float
    base_tariff: float  # charges before FT
    sub_total: float  # charges before VAT
    vat: float
    total: float
    service_charge: float | None = None
    calculated_demand_charge: float | None = None
    effective_demand_charge: float | None = None
    pf_charge: float | None = None

    def to_dict(self, decimals: int | None = None) -> dict[str, float | None]:
        """Render the fields relevant to the customer class.

        Args:
            decimals: Round amounts for presentation; None keeps full precision.
        """
        if self.calculation_class.is_demand_billed:
            fields = {
                "calculatedDemandCharge": self.calculated_demand_charge,
                "energyCharge": self.energy_charge,
                "effectiveDemandCharge": self.effective_demand_charge,
                "pfCharge": self.pf_charge,
                "serviceCharge": self.service_charge,
                "ftCharge": self.ft_charge,
                "subTotal": self.sub_total,
                "vat": self.vat,
                "grandTotal": self.total,
            }
        else:
            fields = {
                "energyCharge": self.energy_charge,
                "serviceCharge": self.service_charge,
                "baseTariff": self.base_tariff,
                "ftCharge": self.ft_charge,
                "vat": self.vat,
                "totalBill": self.total,
            }
        if decimals is None:
            return fields
        return {
            key: round(value, decimals) if value is not None else None
            for key, value in fields.items()
        }
