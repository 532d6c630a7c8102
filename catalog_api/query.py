"""
Filter predicates for document queries and their rendering to Cosmos DB SQL.

Crud modules describe what they want with the small predicate vocabulary
below; ``build_query`` turns a list of predicates (implicitly AND-ed) into a
parameterised Cosmos SQL statement.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

LEGACY_USER_KEYS = ("userId", "user_id", "id")


@dataclass(frozen=True)
class Eq:
    field: str
    value: Any


@dataclass(frozen=True)
class Ne:
    field: str
    value: Any


@dataclass(frozen=True)
class Gt:
    field: str
    value: Any


@dataclass(frozen=True)
class In:
    field: str
    values: Tuple[Any, ...]


@dataclass(frozen=True)
class ArrayContains:
    field: str
    value: Any


@dataclass(frozen=True)
class TextSearch:
    """Case-insensitive substring match on any of ``fields``.

    ``array_fields`` are string arrays; an element containing the text counts
    as a match.
    """

    fields: Tuple[str, ...]
    text: str
    array_fields: Tuple[str, ...] = ()


@dataclass(frozen=True)
class LegacyGrantMention:
    """Inventory whose embedded legacy ``access`` mentions ``user_id``.

    Coarse pre-filter only; the permission level itself is decided by
    ``catalog_api.access.legacy_access_level``.
    """

    user_id: str


@dataclass(frozen=True)
class AnyOf:
    filters: Tuple[Any, ...]


@dataclass(frozen=True)
class OrderBy:
    field: str
    descending: bool = False


@dataclass
class _Params:
    values: List[Dict[str, Any]] = field(default_factory=list)

    def add(self, value: Any) -> str:
        name = f"@p{len(self.values)}"
        self.values.append({"name": name, "value": value})
        return name


def path(field_name: str, alias: str = "c") -> str:
    """``access.users`` -> ``c["access"]["users"]``"""
    return alias + "".join(f'["{part}"]' for part in field_name.split("."))


def _legacy_entry_match(alias: str, param: str) -> str:
    return " OR ".join(f'{alias}["{key}"] = {param}' for key in LEGACY_USER_KEYS)


def _render(predicate: Any, params: _Params) -> str:
    if isinstance(predicate, Eq):
        if predicate.value is None:
            return f"(NOT IS_DEFINED({path(predicate.field)}) OR IS_NULL({path(predicate.field)}))"
        return f"{path(predicate.field)} = {params.add(predicate.value)}"
    if isinstance(predicate, Ne):
        return f"{path(predicate.field)} != {params.add(predicate.value)}"
    if isinstance(predicate, Gt):
        return f"{path(predicate.field)} > {params.add(predicate.value)}"
    if isinstance(predicate, In):
        if not predicate.values:
            return "false"
        return f"ARRAY_CONTAINS({params.add(list(predicate.values))}, {path(predicate.field)})"
    if isinstance(predicate, ArrayContains):
        return f"ARRAY_CONTAINS({path(predicate.field)}, {params.add(predicate.value)})"
    if isinstance(predicate, TextSearch):
        text = params.add(predicate.text)
        clauses = [f"CONTAINS({path(f)}, {text}, true)" for f in predicate.fields]
        clauses += [
            f"EXISTS(SELECT VALUE t FROM t IN {path(f)} WHERE CONTAINS(t, {text}, true))"
            for f in predicate.array_fields
        ]
        return "(" + " OR ".join(clauses) + ")"
    if isinstance(predicate, LegacyGrantMention):
        uid = params.add(predicate.user_id)
        access = path("access")
        users = path("access.users")
        return (
            f"(IS_DEFINED({access}[{uid}])"
            f" OR EXISTS(SELECT VALUE a FROM a IN {access} WHERE {_legacy_entry_match('a', uid)})"
            f" OR EXISTS(SELECT VALUE u FROM u IN {users} WHERE {_legacy_entry_match('u', uid)}))"
        )
    if isinstance(predicate, AnyOf):
        if not predicate.filters:
            return "false"
        return "(" + " OR ".join(_render(p, params) for p in predicate.filters) + ")"
    raise TypeError(f"Unsupported filter predicate: {predicate!r}")


def build_query(
    filters: Sequence[Any] = (),
    order_by: Sequence[OrderBy] = (),
    offset: Optional[int] = None,
    limit: Optional[int] = None,
    count: bool = False,
) -> Tuple[str, List[Dict[str, Any]]]:
    """
    Render predicates into a Cosmos SQL statement and its parameter list.

    Args:
        filters: Predicates combined with AND
        order_by: Sort keys, applied in order
        offset: Number of documents to skip (requires ``limit``)
        limit: Maximum number of documents to return
        count: Return ``SELECT VALUE COUNT(1)`` instead of documents

    Returns:
        Tuple of query text and Cosmos-style parameters
    """
    params = _Params()
    query = "SELECT VALUE COUNT(1) FROM c" if count else "SELECT * FROM c"

    clauses = [_render(p, params) for p in filters]
    if clauses:
        query += " WHERE " + " AND ".join(clauses)

    if order_by and not count:
        query += " ORDER BY " + ", ".join(
            f"{path(o.field)} {'DESC' if o.descending else 'ASC'}" for o in order_by
        )

    if limit is not None and not count:
        query += f" OFFSET {int(offset or 0)} LIMIT {int(limit)}"

    return query, params.values
