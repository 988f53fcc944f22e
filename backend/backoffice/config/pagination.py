from __future__ import annotations
from typing import Any, Dict, Mapping, NamedTuple
from backoffice.errors import ValidationFailed

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 200


class Page(NamedTuple):
    limit: int
    offset: int

    def meta(self, total: int, returned: int) -> Dict[str, Any]:
        return {'total': total, 'limit': self.limit, 'offset': self.offset, 'returned': returned}


def _int_arg(args: Mapping[str, str], key: str, default: int) -> int:
    raw = args.get(key)
    if raw is None or raw == '':
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValidationFailed(description=f'{key} must be an integer')


def page_from_args(args: Mapping[str, str]) -> Page:
    """Read ``limit``/``offset`` from query args; out-of-range values are clamped."""
    limit = _int_arg(args, 'limit', DEFAULT_PAGE_SIZE)
    offset = _int_arg(args, 'offset', 0)
    return Page(limit=max(1, min(limit, MAX_PAGE_SIZE)), offset=max(0, offset))
