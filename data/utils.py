import math
from collections.abc import Sequence


def compute_change_pct(values: Sequence[float]) -> float:
    """
    Відсоткова зміна між першою та останньою точкою ряду.

    Правила:
      - менше двох точок -> рівно 0.0
      - перша точка 0 або не скінченна -> 0.0 (ділити нема на що)
      - інакше (last - first) * 100 / first
    """
    if len(values) < 2:
        return 0.0
    first = float(values[0])
    last = float(values[-1])
    if first == 0 or not math.isfinite(first) or not math.isfinite(last):
        return 0.0
    return (last - first) * 100 / first


def series_high_low(values: Sequence[float], default: float = 0.0) -> tuple[float, float]:
    """
    Повертає (max, min) ряду; для порожнього ряду -> (default, default).
    """
    if not values:
        return default, default
    return max(values), min(values)
