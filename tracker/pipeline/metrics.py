from dataclasses import dataclass, field


@dataclass
class WeekMetrics:
    """Track fetch metrics for each week in the window."""
    label: str
    date_from: str
    date_to: str
    gig_count: int = 0
    errors: int = 0
    error_messages: list = field(default_factory=list)
    duration_ms: float = 0.0
