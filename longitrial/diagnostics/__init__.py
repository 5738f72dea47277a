from ._check import DiagnosticCheck, DiagnosticReport
from .sampler import diagnose

__all__ = ["DiagnosticCheck", "DiagnosticReport", "diagnose"]
