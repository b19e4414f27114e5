from .engine import (
    calculate_benchmark_stats,
    detect_outliers,
    generate_benchmarks,
    get_benchmarks_for_facility,
    get_percentile_rank,
    get_performance_label,
)
