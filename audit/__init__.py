"""Audit trail of events handled by the bot."""

from .logger import AuditLogger

__all__ = ["AuditLogger"]
