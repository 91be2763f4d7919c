"""Deterministic resolution of concurrently modified records.

Resolution rules:
- last-write-wins: strictly newer remote ``updated_at`` wins; ties and a
  missing remote timestamp keep local; a missing local timestamp yields remote
- first-write-wins: always local
- server-wins: always remote
- custom: a caller-supplied callable whose return value is used unmodified

Resolvers never mutate their inputs.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from typing import Any

from record_sync.core.record import Record, get_updated_at
from record_sync.errors import SyncConfigurationError
from record_sync.sync.protocol import ConflictContext, ConflictPolicy, ConflictResolverFn
from record_sync.utils.timeutils import parse_timestamp

logger = logging.getLogger(__name__)


def last_write_wins(
    local: Record, remote: Record, context: ConflictContext | None = None
) -> Record:
    local_time = parse_timestamp(get_updated_at(local))
    remote_time = parse_timestamp(get_updated_at(remote))
    if remote_time is None:
        return local
    if local_time is None:
        return remote
    return remote if remote_time > local_time else local


def first_write_wins(
    local: Record, remote: Record, context: ConflictContext | None = None
) -> Record:
    return local


def server_wins(local: Record, remote: Record, context: ConflictContext | None = None) -> Record:
    return remote


_BUILTIN: dict[ConflictPolicy, Callable[..., Record]] = {
    ConflictPolicy.LAST_WRITE_WINS: last_write_wins,
    ConflictPolicy.FIRST_WRITE_WINS: first_write_wins,
    ConflictPolicy.SERVER_WINS: server_wins,
}


def get_resolver(resolution: ConflictPolicy | str | ConflictResolverFn) -> ConflictResolverFn:
    """Look up the resolver for a policy name, or return a custom callable unchanged."""
    if callable(resolution):
        return resolution
    try:
        return _BUILTIN[ConflictPolicy(resolution)]
    except ValueError as e:
        raise SyncConfigurationError(
            f"Unknown conflict resolution strategy: {resolution}"
        ) from e


def _accepts_context(fn: Callable[..., Any]) -> bool:
    try:
        params = inspect.signature(fn).parameters.values()
    except (TypeError, ValueError):
        return True
    positional = [
        p
        for p in params
        if p.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
    ]
    has_varargs = any(p.kind == inspect.Parameter.VAR_POSITIONAL for p in params)
    return has_varargs or len(positional) >= 3


async def resolve(
    local: Record,
    remote: Record,
    resolution: ConflictPolicy | str | ConflictResolverFn,
    context: ConflictContext,
) -> Record:
    """Resolve a conflict between the local and remote version of one record.

    Custom resolvers may be sync or async and may take ``(local, remote)``
    or ``(local, remote, context)``.
    """
    resolver = get_resolver(resolution)
    if _accepts_context(resolver):
        result = resolver(local, remote, context)
    else:
        result = resolver(local, remote)
    if inspect.isawaitable(result):
        result = await result
    logger.debug(
        "Resolved conflict for %s/%s (local v%s, remote v%s)",
        context.storage_key,
        context.item_id,
        context.local_version,
        context.remote_version,
    )
    return result
