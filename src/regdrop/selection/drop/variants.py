from dataclasses import dataclass
from enum import Enum
from typing import Dict

from regdrop.exceptions import InvalidArgumentError


class Criterion(str, Enum):
    THRESHOLD = "threshold"
    ERROR = "error"


@dataclass(frozen=True)
class VariantConfig:
    """One published DROP-for-regression variant, as switches over the shared engine."""
    name: str
    noise_filter: bool
    ordering: bool
    criterion: Criterion


VARIANTS: Dict[str, VariantConfig] = {
    v.name: v for v in (
        VariantConfig("drop-error", noise_filter=False, ordering=False, criterion=Criterion.ERROR),
        VariantConfig("drop-threshold", noise_filter=False, ordering=False, criterion=Criterion.THRESHOLD),
        VariantConfig("drop2-threshold", noise_filter=False, ordering=True, criterion=Criterion.THRESHOLD),
        VariantConfig("drop2-error", noise_filter=False, ordering=True, criterion=Criterion.ERROR),
        VariantConfig("drop3-threshold", noise_filter=True, ordering=True, criterion=Criterion.THRESHOLD),
        VariantConfig("drop3-error", noise_filter=True, ordering=True, criterion=Criterion.ERROR),
    )
}


def get_variant(name) -> VariantConfig:
    if isinstance(name, VariantConfig):
        return name
    try:
        return VARIANTS[str(name).lower()]
    except KeyError:
        raise InvalidArgumentError(
            f"Unknown DROP variant '{name}'. Available: {', '.join(VARIANTS)}"
        ) from None
