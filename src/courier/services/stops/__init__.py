"""Pending delivery stops."""

from .registry import RegistryChange, StopRegistry

__all__ = ["RegistryChange", "StopRegistry"]
