"""Destined core: worker, invoker, matcher, router, bus and ingress."""
