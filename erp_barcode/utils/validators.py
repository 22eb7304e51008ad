"""
==============================================================================
Validation Utilities Module
==============================================================================

Validation classes for stock-taking input.

This module implements:
- SessionNameValidator: Validates stock taking session names
- QuantityValidator: Validates counted quantities

Validation Rules for Session Names:
----------------------------------
- Length: 3-100 characters after trimming
- Must start with a letter or digit
- Allowed: letters, digits, spaces, underscore, hyphen, dot, slash, '#'
- Inner whitespace runs are collapsed to one space

==============================================================================
"""

from __future__ import annotations

import re
from typing import Optional, Tuple


class SessionNameValidator:
    """
    Validator for stock taking session names.

    Example:
        >>> validator = SessionNameValidator()
        >>> is_valid, normalized, error = validator.validate("  Q3   Cycle Count ")
        >>> print(normalized)
        'Q3 Cycle Count'
    """

    PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9 _\-./#]*$")

    MIN_LENGTH = 3
    MAX_LENGTH = 100

    def validate(self, name: Optional[str]) -> Tuple[bool, Optional[str], Optional[str]]:
        """
        Validate and normalize a session name.

        Returns:
            Tuple of (is_valid, normalized_name, error_message)
        """
        if not name or not name.strip():
            return False, None, "Session name is required"

        normalized = " ".join(name.split())

        if len(normalized) < self.MIN_LENGTH:
            return False, None, f"Session name must be at least {self.MIN_LENGTH} characters"

        if len(normalized) > self.MAX_LENGTH:
            return False, None, f"Session name must be at most {self.MAX_LENGTH} characters"

        if not normalized[0].isalnum():
            return False, None, "Session name must start with a letter or digit"

        if not self.PATTERN.match(normalized):
            return False, None, (
                "Session name can only contain letters, digits, spaces "
                "and _ - . / #"
            )

        return True, normalized, None

    def is_valid(self, name: Optional[str]) -> bool:
        """Quick validation check."""
        is_valid, _, _ = self.validate(name)
        return is_valid


class QuantityValidator:
    """
    Validator for counted quantities.
    """

    MAX_QUANTITY = 1_000_000

    def validate(self, qty: int, max_qty: Optional[int] = None) -> Tuple[bool, Optional[str]]:
        """
        Validate a quantity value.

        Args:
            qty: Quantity to validate
            max_qty: Maximum allowed (defaults to MAX_QUANTITY)

        Returns:
            Tuple of (is_valid, error_message)
        """
        if max_qty is None:
            max_qty = self.MAX_QUANTITY

        if qty < 0:
            return False, "Quantity cannot be negative"

        if qty > max_qty:
            return False, f"Quantity cannot exceed {max_qty}"

        return True, None
