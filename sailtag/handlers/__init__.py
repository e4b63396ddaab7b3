from sailtag.handlers import istiorevisiontag, watches, probes

__all__ = ["istiorevisiontag", "watches", "probes"]
