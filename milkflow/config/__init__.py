# milkflow/config/__init__.py
from __future__ import annotations

"""
milkflow.config is a PACKAGE.

- Cooperative identity lives in: milkflow.config.cooperative
- App runtime settings live in: milkflow.settings
"""

from .cooperative import COOPERATIVE, cooperative_context

__all__ = ["COOPERATIVE", "cooperative_context"]
