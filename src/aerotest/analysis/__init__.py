"""Post-synthesis analysis: scrutineering, suggestions and audits."""

from .audit import AuditReport, audit_against_baseline
from .scrutineering import scrutinize
from .suggestions import flow_analysis_text, generate_suggestions

__all__ = [
    "AuditReport",
    "audit_against_baseline",
    "scrutinize",
    "flow_analysis_text",
    "generate_suggestions",
]
