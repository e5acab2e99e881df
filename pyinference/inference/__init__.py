"""
Inference summaries.

Public API:
    summarize(source, conf_levels=0.95, method="percentile") -> InferenceSummary

Reduces bootstrap replicates or posterior draws to a point estimate and
percentile or highest-density intervals per term, for one or several
confidence levels at once.
"""

from pyinference.inference.summarize import InferenceSummary, summarize

__all__ = [
    "summarize",
    "InferenceSummary",
]
