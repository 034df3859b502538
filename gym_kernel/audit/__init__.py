"""Audit trail: hash-chained audit events and their sequence allocator."""

from gym_kernel.audit.auditor import AuditorService
from gym_kernel.audit.sequence import SequenceService

__all__ = ["AuditorService", "SequenceService"]
