"""Map a (provider, class, tariff) request to its tariff strategy."""

from .errors import UnsupportedCombinationError
from .models import CalculationClass, Provider, TariffType
from .strategies.base import TariffStrategy
from .strategies.normal import NormalStrategy
from .strategies.tod import TodStrategy
from .strategies.tou import TouStrategy

STRATEGIES: dict[TariffType, TariffStrategy] = {
    TariffType.NORMAL: NormalStrategy(),
    TariffType.TOU: TouStrategy(),
    TariffType.TOD: TodStrategy(),
}


def select(
    provider: Provider, calculation_class: CalculationClass, tariff_type: TariffType
) -> TariffStrategy:
    """Return the shared strategy for a tariff type offered to the class.

    The provider does not influence the choice; provider differences live in
    the rate rows.
    """
    if tariff_type not in calculation_class.tariff_types:
        raise UnsupportedCombinationError(
            f"{calculation_class.label} does not support {tariff_type.display} tariff "
            f"(received: {tariff_type.value})"
        )
    return STRATEGIES[tariff_type]
