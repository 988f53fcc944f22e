from __future__ import annotations
from dataclasses import dataclass
from typing import AbstractSet, Optional, Tuple

from backoffice.errors import PermissionDenied, Unauthenticated

ALLOW = 'allow'
UNAUTHENTICATED = 'unauthenticated'
FORBIDDEN = 'forbidden'


@dataclass(frozen=True)
class Decision:
    outcome: str
    required: Tuple[str, ...] = ()

    @property
    def allowed(self) -> bool:
        return self.outcome == ALLOW


def authorize(permissions: Optional[AbstractSet[str]], required: AbstractSet[str]) -> Decision:
    """Decide access for a resolved permission set.

    ``permissions`` is None when the caller has no resolved identity. Holding
    any one of ``required`` is enough; an empty requirement always allows.
    A denial only carries the required names, never the caller's own set.
    """
    if not required:
        return Decision(ALLOW)
    wanted = tuple(sorted(required))
    if permissions is None:
        return Decision(UNAUTHENTICATED, wanted)
    if set(required) & set(permissions):
        return Decision(ALLOW)
    return Decision(FORBIDDEN, wanted)


def enforce(decision: Decision) -> None:
    if decision.outcome == UNAUTHENTICATED:
        raise Unauthenticated()
    if decision.outcome == FORBIDDEN:
        raise PermissionDenied(decision.required)
