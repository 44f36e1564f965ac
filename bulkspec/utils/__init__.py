"""Utility functions and classes for bulkspec."""

from bulkspec.utils import logging

__all__ = ("logging",)
