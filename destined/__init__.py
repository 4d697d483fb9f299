"""Destined: job-completion destination routing.

An ingress publishes ``"please " + mode`` to a message bus; a worker turns
each delivered batch into a success result or a raised error; the invoker
wraps that outcome into an envelope; and the router forwards the envelope
to every downstream handler whose declarative rule matches it.
"""

__version__ = "0.1.0"

from destined.core.matcher import match
from destined.core.router import DestinationRouter, RouteResult
from destined.core.system import DestinedSystem, SystemConfig, build_default_config

__all__ = [
    "DestinationRouter",
    "DestinedSystem",
    "RouteResult",
    "SystemConfig",
    "build_default_config",
    "match",
    "__version__",
]
