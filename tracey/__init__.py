"""Critical path, drag, slack and antagonism analysis for causal traces."""

__version__ = "0.1.0"

__all__ = [
    "antagonism",
    "cache",
    "drag",
    "exact",
    "finder",
    "intervals",
    "model",
    "paths",
    "search",
    "strategies",
]