import sys
from typing import Protocol, TypeVar

T = TypeVar("T", contravariant=True)

MAX_DISTANCE = sys.float_info.max  # "no valid path" / "not better than the bound"


class DTWComparison(Protocol[T]):
    """Pairwise element comparison used by the DTW family"""

    def distance(self, a: T, b: T) -> float:
        ...

    def correlation(self, a: T, b: T) -> float:
        ...


from .SimpleDTW import SimpleDTW  # noqa: E402
from .EarlyAbandonDTW import EarlyAbandonDTW  # noqa: E402
from .OverlapDTW import OverlapDTW  # noqa: E402
from .DistanceCache import PairwiseDistanceCache  # noqa: E402
from .KeyPoseComparison import KeyPoseComparison  # noqa: E402
