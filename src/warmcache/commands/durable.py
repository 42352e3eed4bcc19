"""Durable commands -- inspect and purge the durable mirror.

The durable mirror is the only cache state that outlives a process, so it
is the only state a separate CLI invocation can see.  These commands open
the mirror read-mostly: ``list`` and ``show`` never modify records, and
``purge`` removes them only after confirmation.
"""

from __future__ import annotations

import time

import typer

from warmcache.cache.mirror import DiskcacheBackend, DurableMirror
from warmcache.commands import resolve_for_context
from warmcache.output import debug, format_response, info, print_table, success


durable_app = typer.Typer(no_args_is_help=True)


def _open_mirror(ctx: typer.Context) -> DurableMirror:
    """Open the durable mirror described by the effective configuration."""
    from warmcache.config import get_durable_dir

    _, config = resolve_for_context(ctx)
    directory = get_durable_dir(config)
    debug(f"Durable store: {directory}")
    return DurableMirror(
        DiskcacheBackend(directory),
        config.durable_keys,
        config.durable_namespace,
        time.time,
    )


@durable_app.command("list")
def durable_list(ctx: typer.Context) -> None:
    """List durable records with their age, TTL, and validity.

    Example::

        warmcache durable list
        warmcache --json durable list
    """
    mirror = _open_mirror(ctx)
    try:
        records = mirror.records()
    finally:
        mirror.close()

    if not records:
        info("No durable records.")
        return

    now = time.time()
    rows: list[list[str]] = []
    for key, entry in records.items():
        if entry is None:
            rows.append([key, "-", "-", "malformed"])
            continue
        status = "valid" if entry.is_valid(now) else "expired"
        rows.append([key, f"{entry.age(now):.0f}s", f"{entry.ttl_seconds:.0f}s", status])
    print_table(["key", "age", "ttl", "status"], rows, title="Durable records")


@durable_app.command("show")
def durable_show(
    ctx: typer.Context,
    key: str = typer.Argument(help="Canonical cache key, e.g. 'user_profile'."),
) -> None:
    """Print the stored value and bookkeeping of one durable record.

    Raises:
        NotFoundError: If no record (or only a malformed one) exists.

    Example::

        warmcache durable show user_profile
    """
    from warmcache.exceptions import NotFoundError

    mirror = _open_mirror(ctx)
    try:
        if not mirror.is_durable(key):
            raise NotFoundError(f"'{key}' is not in the durable allow-list")
        records = mirror.records()
    finally:
        mirror.close()

    if key not in records:
        raise NotFoundError(f"No durable record for '{key}'")
    entry = records[key]
    if entry is None:
        raise NotFoundError(f"Durable record for '{key}' is malformed")
    format_response(entry.model_dump(mode="json"))


@durable_app.command("purge")
def durable_purge(
    ctx: typer.Context,
    expired_only: bool = typer.Option(
        False, "--expired-only", help="Only remove expired or malformed records."
    ),
) -> None:
    """Remove durable records.

    Asks for confirmation unless ``--force`` is active.

    Example::

        warmcache durable purge --expired-only
        warmcache --force durable purge
    """
    force = ctx.obj.get("force", False) if ctx.obj else False
    if not force and not expired_only:
        if not typer.confirm("Remove all durable cache records?"):
            info("Cancelled.")
            raise typer.Exit()

    mirror = _open_mirror(ctx)
    try:
        if expired_only:
            now = time.time()
            stale = [
                key
                for key, entry in mirror.records().items()
                if entry is None or not entry.is_valid(now)
            ]
            mirror.forget_many(stale)
            success(f"Removed {len(stale)} stale durable record(s).")
        else:
            mirror.forget_all()
            success("Removed all durable records.")
    finally:
        mirror.close()
