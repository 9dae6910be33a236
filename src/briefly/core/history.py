"""History normalization and context windowing."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from loguru import logger

from briefly.types import ASSISTANT_ROLE, USER_ROLE, Turn

DEFAULT_WINDOW_TURNS = 11
_VALID_ROLES = frozenset({USER_ROLE, ASSISTANT_ROLE})


def normalize_history(turns: Iterable[Turn]) -> list[Turn]:
    """Repair an arbitrary turn list into a user-first, strictly alternating one.

    Everything before the first user turn is dropped, and a turn is kept only
    when its role differs from the previously kept turn. Turns with unknown
    roles are skipped. Returns an empty list when there is no user turn.
    """
    normalized: list[Turn] = []
    dropped = 0
    for turn in turns:
        if turn.role not in _VALID_ROLES:
            dropped += 1
            continue
        if not normalized:
            if turn.role != USER_ROLE:
                dropped += 1
                continue
            normalized.append(turn)
            continue
        if turn.role == normalized[-1].role:
            dropped += 1
            continue
        normalized.append(turn)

    if dropped:
        logger.debug("history.normalize dropped={} kept={}", dropped, len(normalized))
    return normalized


def window_history(turns: Sequence[Turn], max_turns: int = DEFAULT_WINDOW_TURNS) -> list[Turn]:
    """Bound *turns* to ``max_turns`` keeping the first turn plus the most recent tail."""
    if max_turns < 1:
        raise ValueError(f"max_turns must be >= 1, got {max_turns}")
    if len(turns) <= max_turns:
        return list(turns)
    if max_turns == 1:
        return [turns[0]]
    return [turns[0], *turns[-(max_turns - 1) :]]
