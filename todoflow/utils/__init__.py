# File: utils/__init__.py
"""Pure Python utilities for ToDoFlow.

These modules import nothing from the rest of the package, so they can be
used by every engine without circular imports.

Submodules:
    - dt_utils: Calendar-day parsing, weekday numbering, window helpers
    - math_utils: Ratio rounding and percentage calculations

Usage:
    from . import dt_utils
    from .math_utils import calculate_percentage
"""

from . import dt_utils, math_utils

__all__ = ["dt_utils", "math_utils"]
