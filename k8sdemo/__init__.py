"""Scheduler extender, admission webhooks, resource types, a reconciler and a volume helper."""

__version__ = "0.1.0"

__all__ = [
    "admission",
    "admission_server",
    "annotator",
    "apps",
    "calculate",
    "extender",
    "extender_server",
    "pagination",
    "provisioner",
    "reconciler",
]