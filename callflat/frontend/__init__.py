"""Frontend: getting function summaries into the engine."""

from .summary_loader import (
    SummaryFormatError,
    parse_term,
    parse_summary,
    parse_environment,
    parse_type_environment,
    load_summaries,
    load_environment,
)
