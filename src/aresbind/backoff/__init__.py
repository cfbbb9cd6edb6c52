r"""Backoff strategies for the delay between two attempts."""

from __future__ import annotations

__all__ = ["BaseBackoffStrategy", "ConstantBackoff"]

from aresbind.backoff.base import BaseBackoffStrategy
from aresbind.backoff.constant import ConstantBackoff
