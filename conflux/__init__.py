"""Multi-tenant access control, cluster authorization, HTTP helpers, protocol plugins and benchmarks."""

__version__ = "0.1.0"