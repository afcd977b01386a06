"""
defi_core Core Module

Protocol engines plus the shared configuration, logging, validation and
exception layers they are built on.
"""

__all__ = []
