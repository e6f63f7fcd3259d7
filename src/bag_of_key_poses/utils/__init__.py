from .functions import (
    NO_MATCH_DISTANCE,
    correlation,
    euclidean_distance,
    manhattan_distance,
    manhattan_distance_bounded,
    manhattan_distance_normalized,
    median,
    pairwise_distances,
    percentile,
    std_dev,
)
