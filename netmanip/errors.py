# -*- coding: utf-8 -*-
"""
netmanip.errors
==================================================

Exception hierarchy.  Every error carries the offending label or
variable name so callers can report it without parsing messages.
"""

from typing import Optional


class NetManipError(Exception):
    """Base class for all netmanip errors."""


class ContractViolation(NetManipError, TypeError):
    """
    A manipulation or statistic procedure returned a value that does
    not conform to its contract (wrong shape, duplicate or reserved
    labels, non-numeric statistic), or raised while being evaluated.
    """

    def __init__(self, message: str, label: Optional[str] = None):
        super().__init__(message)
        self.label = label


class DimensionMismatch(NetManipError, ValueError):
    """Node-variable length disagrees with the adjacency dimension."""

    def __init__(self, message: str, name: Optional[str] = None):
        super().__init__(message)
        self.name = name


class MissingVariableError(NetManipError, KeyError):
    """A node or sample variable name is absent from the entity."""

    def __init__(self, name: str, kind: str = "node"):
        super().__init__(name)
        self.name = name
        self.kind = kind

    def __str__(self):
        return f"{self.kind} variable '{self.name}' not found"


class GroupConfigurationError(NetManipError, ValueError):
    """Grouping variable does not have exactly two distinct values."""

    def __init__(self, message: str, name: Optional[str] = None):
        super().__init__(message)
        self.name = name


class InsufficientDataError(NetManipError, ValueError):
    """Fewer than 2 usable values remain for a comparison."""

    def __init__(self, message: str, label: Optional[str] = None):
        super().__init__(message)
        self.label = label


class UnknownProcedureError(NetManipError, KeyError):
    """A registry lookup named a procedure that was never registered."""

    def __init__(self, name: str, kind: str = "procedure"):
        super().__init__(name)
        self.name = name
        self.kind = kind

    def __str__(self):
        return f"no {self.kind} registered under '{self.name}'"
