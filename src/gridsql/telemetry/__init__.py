"""OpenTelemetry tracer and meter for gridsql.

Spans and metrics are no-ops until the application installs an SDK provider.
"""

from typing import Optional

from opentelemetry import metrics, trace

from gridsql.__version__ import __version__

__all__ = [
    "INSTRUMENTATION_NAME",
    "get_tracer",
    "get_meter",
]

INSTRUMENTATION_NAME = "gridsql"


def get_tracer(name: str = INSTRUMENTATION_NAME, version: Optional[str] = None) -> trace.Tracer:
    """Tracer for ``name``, versioned with the package version by default."""
    return trace.get_tracer(name, version or __version__)


def get_meter(name: str = INSTRUMENTATION_NAME, version: Optional[str] = None) -> metrics.Meter:
    return metrics.get_meter(name, version or __version__)
