"""TTL policy table mapping key families to default expiration windows."""

from __future__ import annotations

from typing import Mapping, Optional

from warmcache.exceptions import InvalidUsageError


class TTLPolicyTable:
    """Resolve the TTL for a key.

    Lookup order is: explicit argument, then the longest key-family
    prefix matching the base key, then the global default.

    Args:
        policies: Mapping of key-family prefix to TTL in seconds.
        default_ttl_seconds: Fallback when no family matches.
    """

    def __init__(self, policies: Mapping[str, float], default_ttl_seconds: float) -> None:
        self._policies = dict(policies)
        self._default = default_ttl_seconds
        # Longest prefix first so "token_prices" wins over "token_".
        self._ordered = sorted(self._policies, key=len, reverse=True)

    @property
    def default_ttl_seconds(self) -> float:
        return self._default

    def family_for(self, base: str) -> Optional[str]:
        """Return the family prefix matching *base*, or ``None``."""
        for family in self._ordered:
            if base.startswith(family):
                return family
        return None

    def resolve(self, base: str, explicit: Optional[float] = None) -> float:
        """Return the TTL in seconds to apply to a write of *base*.

        Raises:
            InvalidUsageError: If *explicit* is given but not positive.
        """
        if explicit is not None:
            if explicit <= 0:
                raise InvalidUsageError(f"TTL must be positive, got {explicit}")
            return float(explicit)
        family = self.family_for(base)
        if family is not None:
            return float(self._policies[family])
        return float(self._default)

    def as_dict(self) -> dict[str, float]:
        """Return a copy of the family table, for diagnostics."""
        return dict(self._policies)
