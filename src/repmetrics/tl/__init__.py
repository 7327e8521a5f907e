from ._diversity import (
    berger_parker_index,
    chao1,
    clonality,
    d50,
    dxx,
    evenness,
    gini_coefficient,
    inverse_simpson,
    richness,
    shannon_diversity,
    shannon_entropy,
    simpson_diversity,
    simpson_index,
)
from ._hill import HillNumber, hill_diversity, hill_number, hill_profile
from ._length_stats import (
    LengthStatsNotComputedError,
    cdr3_length_stats,
    compute_length_stats,
    extract_lengths,
    get_length_stats,
    has_length_stats,
    length_distribution,
    length_stats,
    max_length,
    mean_length,
    median_length,
    min_length,
    std_length,
)
from ._metrics import (
    ALL_METRICS,
    CLONALITY_METRICS,
    DIVERSITY_METRICS,
    LENGTH_METRICS,
    METRIC_FUNCTIONS,
    MISSING,
    RICHNESS_METRICS,
    ROBUST_METRICS,
    Metric,
    Metrics,
    MetricSet,
    compute_metric,
    compute_metrics,
    metric_names,
)
from ._rarefaction import rarefaction, rarefied_metrics
