from __future__ import annotations


def apply_multi_sort(query, sort_expr: str | None, allowed: dict, tie_breaker):
    """Order a select by `sort_expr` ("created_at", "-created_at,machine_model", ...).

    Keys must be in `allowed` (name -> column); a leading '-' sorts descending.
    `tie_breaker` is a ready order clause appended last so equal keys keep a stable order.
    Raises ValueError naming the first unknown key.
    """
    clauses = []
    for token in filter(None, (t.strip() for t in (sort_expr or '').split(','))):
        key = token.lstrip('-')
        col = allowed.get(key)
        if col is None:
            raise ValueError(f'Invalid sort field {key}')
        clauses.append(col.desc() if token.startswith('-') else col.asc())
    return query.order_by(*clauses, tie_breaker)
