DEFAULT_CONFIG = {
    # -----------------------------
    # NURSING HOURS ESTIMATION
    # -----------------------------
    # Used only when no staffing hours are observed:
    # hours = nursing_expenses * wage_ratio / blended_rate
    "estimation": {
        "nursing_wage_ratio": 0.70,
        "blended_hourly_rate": 35.0,
    },

    # -----------------------------
    # SENIOR LIVING OCCUPANCY
    # -----------------------------
    "occupancy": {
        "default_days_in_month": 30,
        "warn_on_default_days": True,
    },

    # -----------------------------
    # DENOMINATOR CHECKS
    # -----------------------------
    "denominators": {
        "payer_days_epsilon": 1.0,       # days
        "skilled_reconciliation_tolerance": 0.01,
    },

    # -----------------------------
    # BENCHMARKS
    # -----------------------------
    "benchmarks": {
        "min_cohort_size": 2,   # state / region / setting cohorts
        "outlier_k": 1.5,       # Tukey fence multiplier
    },

    # -----------------------------
    # OUTPUT CONTROL
    # -----------------------------
    "output_dir": "runs",

    "metadata": {
        "framework": "snfkpi",
        "accounting_basis": "accrual",
    },
}
