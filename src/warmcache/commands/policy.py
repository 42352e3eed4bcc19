"""Policy command -- print the effective TTL policy table."""

from __future__ import annotations

import typer

from warmcache.commands import resolve_for_context
from warmcache.output import print_table


def policy_command(ctx: typer.Context) -> None:
    """Show key-family TTLs, the global default, and the durable allow-list.

    Example::

        warmcache policy
        warmcache --json policy
        warmcache --default-ttl 120 policy
    """
    from warmcache.cache.policy import TTLPolicyTable

    _, config = resolve_for_context(ctx)
    table = TTLPolicyTable(config.ttl_policies, config.default_ttl_seconds)
    durable = set(config.durable_keys) if config.durable_enabled else set()

    rows = [
        [family, f"{ttl:g}", "yes" if family in durable else "no"]
        for family, ttl in sorted(table.as_dict().items())
    ]
    rows.append(["(default)", f"{table.default_ttl_seconds:g}", "-"])
    print_table(["family", "ttl_seconds", "durable"], rows, title="TTL policies")
