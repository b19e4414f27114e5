from .frames import anomalies_to_frame, facts_from_frame, results_to_frame
from .bundle import (
    combined_kpi_table,
    generate_facility_month_bundle,
    write_bundle,
    write_combined_kpi_table,
)
