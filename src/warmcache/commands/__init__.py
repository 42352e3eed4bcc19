"""Built-in CLI sub-commands for warmcache.

* :mod:`~warmcache.commands.durable` -- list, show, and purge durable records.
* :mod:`~warmcache.commands.config` -- view and modify global settings.
* :mod:`~warmcache.commands.policy` -- print the effective TTL policy table.

Each module exports either a :class:`typer.Typer` sub-application (for
multi-command groups) or a plain callback registered on the root app.
"""

from __future__ import annotations

from typing import Optional

import typer

from warmcache.models import CacheConfig, GlobalConfig


def resolve_for_context(ctx: Optional[typer.Context]) -> tuple[GlobalConfig, CacheConfig]:
    """Resolve the effective config with the root ``--max-size``,
    ``--default-ttl`` and ``--durable-dir`` overrides stored in ``ctx.obj``.
    """
    from warmcache.config import resolve_config

    obj = (ctx.obj if ctx is not None else None) or {}
    return resolve_config(
        cli_max_size=obj.get("max_size"),
        cli_default_ttl=obj.get("default_ttl"),
        cli_durable_dir=obj.get("durable_dir"),
    )
