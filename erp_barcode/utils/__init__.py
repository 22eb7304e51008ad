"""
==============================================================================
Utilities Package
==============================================================================

Modules:
--------
- validators: Session name and quantity validation

==============================================================================
"""

from .validators import QuantityValidator, SessionNameValidator

__all__ = [
    "QuantityValidator",
    "SessionNameValidator",
]
