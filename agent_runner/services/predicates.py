"""
Client-side evaluation of entity filter predicates.

Same `where` shape the store's native filter endpoint accepts:

    {'place_id': 'P1'}                              → equality
    {'lead_score': {'gte': 70}}                     → comparison
    {'outreach_status': {'in': ['new', 'open']}}    → membership

A field matches only when every operator on it matches. Comparisons against a
missing field, or between incomparable types, never match.
"""
import operator
from typing import Any, Dict, Iterable, List


_MISSING = object()


def _in(value, options):
    return value in (options or [])


def _nin(value, options):
    return value not in (options or [])


_COMPARISONS = {
    'gt': operator.gt,
    'gte': operator.ge,
    'lt': operator.lt,
    'lte': operator.le,
}

_MEMBERSHIP = {
    'in': _in,
    'nin': _nin,
}

OPERATORS = {'eq', 'neq', *_COMPARISONS, *_MEMBERSHIP}


def is_operator_spec(condition: Any) -> bool:
    """True when a condition is an operator dict rather than a literal value."""
    return isinstance(condition, dict) and bool(condition) and all(k in OPERATORS for k in condition)


def _check(op: str, value: Any, expected: Any) -> bool:
    if op == 'eq':
        return value is not _MISSING and value == expected
    if op == 'neq':
        # A missing field is "not equal" to anything
        return value is _MISSING or value != expected
    if value is _MISSING or value is None:
        return False
    if op in _MEMBERSHIP:
        return _MEMBERSHIP[op](value, expected)
    try:
        return bool(_COMPARISONS[op](value, expected))
    except TypeError:
        return False


def field_matches(record: Dict[str, Any], field: str, condition: Any) -> bool:
    value = record.get(field, _MISSING)
    if is_operator_spec(condition):
        return all(_check(op, value, expected) for op, expected in condition.items())
    return _check('eq', value, condition)


def matches(record: Dict[str, Any], where: Dict[str, Any] = None) -> bool:
    """Evaluate a full `where` clause against one record."""
    for field, condition in (where or {}).items():
        if not field_matches(record, field, condition):
            return False
    return True


def apply_filter(records: Iterable[Dict[str, Any]], where: Dict[str, Any] = None) -> List[Dict[str, Any]]:
    return [r for r in records if matches(r, where)]


def validate_where(where: Dict[str, Any]) -> None:
    """Reject operator dicts that mix known and unknown keys (likely typos)."""
    for field, condition in (where or {}).items():
        if isinstance(condition, dict) and condition:
            known = [k for k in condition if k in OPERATORS]
            unknown = [k for k in condition if k not in OPERATORS]
            if known and unknown:
                raise ValueError(
                    f"Unknown filter operator(s) {unknown} on field '{field}'. "
                    f"Supported: {sorted(OPERATORS)}"
                )
