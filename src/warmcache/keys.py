"""Canonical cache key derivation.

Two calls with the same base name and the same parameter set always
produce the same key regardless of the order in which the parameters were
supplied, and differing parameter values always produce differing keys::

    >>> build_key("token_prices", {"symbol": "ETH", "currency": "usd"})
    'token_prices_currency:usd|symbol:ETH'
    >>> build_key("token_prices")
    'token_prices'
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

PARAM_SEPARATOR = "|"
BASE_SEPARATOR = "_"


def build_key(base: str, params: Optional[Mapping[str, Any]] = None) -> str:
    """Derive the canonical key for *base* and *params*.

    Parameter names are sorted and joined as ``name:value`` pairs.  The
    joined string is appended to *base* only when *params* is non-empty.
    """
    if not params:
        return base
    pairs = PARAM_SEPARATOR.join(f"{name}:{params[name]}" for name in sorted(params))
    return f"{base}{BASE_SEPARATOR}{pairs}"
