"""Request parameter normalization for DataTables server-side processing."""

import json
import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from fastapi import Request

from fastapi_datatables.config import DataTablesConfig
from fastapi_datatables.exceptions import MalformedParameterError
from fastapi_datatables.models import ColumnParam, OrderClause, RequestParams, SortDirection

_BRACKET_KEY = re.compile(r"^([^\[\]]+)((?:\[[^\[\]]*\])+)$")
_BRACKET_PART = re.compile(r"\[([^\[\]]*)\]")

_TRUE_VALUES = {"true", "1", "t", "yes", "y", "on"}


def unflatten_query_params(items: Iterable[Tuple[str, Any]]) -> Dict[str, Any]:
    """
    Turn bracket-encoded keys into nested mappings.

    jQuery serializes DataTables requests as
    ``columns[0][search][value]=x&order[0][dir]=asc``; this rebuilds
    ``{"columns": {"0": {"search": {"value": "x"}}}, "order": {...}}``.
    Plain keys are kept as they are. Later duplicates win.

    Args:
        items: (key, value) pairs, e.g. ``request.query_params.multi_items()``

    Returns:
        Dict[str, Any]: Nested mapping
    """
    result: Dict[str, Any] = {}
    for key, value in items:
        match = _BRACKET_KEY.match(key)
        if match is None:
            result[key] = value
            continue
        path = [match.group(1)] + _BRACKET_PART.findall(match.group(2))
        node = result
        for part in path[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = {}
                node[part] = child
            node = child
        node[path[-1]] = value
    return result


def _decode_json(field: str, raw: str) -> Any:
    try:
        return json.loads(raw)
    except ValueError as e:
        raise MalformedParameterError(f"Parameter '{field}' is not valid JSON: {e}") from e


def _as_list(field: str, raw: Any) -> List[Any]:
    """
    Decode a list-valued parameter from any supported wire shape.

    Accepts a JSON-encoded string, a mapping keyed by numeric string indices,
    or an already-decoded list.
    """
    if raw is None:
        return []
    if isinstance(raw, str):
        if not raw.strip():
            return []
        raw = _decode_json(field, raw)
    if isinstance(raw, list):
        return raw
    if isinstance(raw, Mapping):
        try:
            keys = sorted(raw.keys(), key=int)
        except (TypeError, ValueError) as e:
            raise MalformedParameterError(
                f"Parameter '{field}' must be keyed by numeric indices."
            ) from e
        return [raw[k] for k in keys]
    raise MalformedParameterError(f"Parameter '{field}' must be a list.")


def _as_mapping(field: str, raw: Any) -> Mapping[str, Any]:
    if raw is None:
        return {}
    if isinstance(raw, str):
        if not raw.strip():
            return {}
        raw = _decode_json(field, raw)
    if not isinstance(raw, Mapping):
        raise MalformedParameterError(f"Parameter '{field}' must be an object.")
    return raw


def _as_bool(raw: Any, default: bool) -> bool:
    if raw is None:
        return default
    if isinstance(raw, bool):
        return raw
    return str(raw).strip().lower() in _TRUE_VALUES


def _as_int(field: str, raw: Any, default: int) -> int:
    if raw is None or raw == "":
        return default
    if isinstance(raw, bool):
        raise MalformedParameterError(f"Parameter '{field}' must be an integer.")
    try:
        return int(str(raw).strip())
    except ValueError as e:
        raise MalformedParameterError(f"Parameter '{field}' must be an integer.") from e


def coerce_draw(raw: Any) -> int:
    """
    Coerce the ``draw`` correlation token to an integer.

    Absent or garbage input becomes 0.
    """
    if raw is None or isinstance(raw, bool):
        return 0
    try:
        return int(str(raw).strip())
    except ValueError:
        return 0


def _parse_search(raw: Any) -> Tuple[Optional[str], bool]:
    search = _as_mapping("search", raw)
    value = search.get("value")
    if value is not None and not isinstance(value, str):
        value = str(value)
    return value or None, _as_bool(search.get("regex"), False)


def _parse_one_column_at(i: int, raw: Any) -> ColumnParam:
    if not isinstance(raw, Mapping):
        raise MalformedParameterError(f"Invalid column at index {i}.")
    search = raw.get("search")
    if isinstance(search, str):
        search = _decode_json(f"columns[{i}][search]", search)
    if search is not None and not isinstance(search, Mapping):
        raise MalformedParameterError(f"Invalid search for column at index {i}.")
    search = search or {}
    data = raw.get("data")
    return ColumnParam(
        data="" if data is None else str(data),
        name=str(raw.get("name") or ""),
        searchable=_as_bool(raw.get("searchable"), True),
        orderable=_as_bool(raw.get("orderable"), True),
        search_value=str(search.get("value") or ""),
        search_regex=_as_bool(search.get("regex"), False),
    )


def _parse_one_order_at(i: int, raw: Any) -> OrderClause:
    if not isinstance(raw, Mapping):
        raise MalformedParameterError(f"Invalid order clause at index {i}.")
    column = _as_int(f"order[{i}][column]", raw.get("column"), -1)
    if column < 0:
        raise MalformedParameterError(f"Order clause at index {i} has no column index.")
    return OrderClause(column=column, dir=SortDirection.parse(raw.get("dir")))


def normalize_request(
    raw: Mapping[str, Any], config: Optional[DataTablesConfig] = None
) -> RequestParams:
    """
    Parse raw DataTables parameters into a ``RequestParams``.

    ``order``, ``search`` and ``columns`` are each decoded independently, so a
    request may mix JSON-encoded strings with index-keyed mappings.

    Args:
        raw: Raw parameters (nested mapping, see ``unflatten_query_params``)
        config: Configuration supplying length defaults and bounds

    Returns:
        RequestParams: Canonical request

    Raises:
        MalformedParameterError: If any parameter cannot be decoded
    """
    config = config or DataTablesConfig()

    start = max(0, _as_int("start", raw.get("start"), 0))
    length = _as_int("length", raw.get("length"), config.default_length)
    if length != -1 and length < 1:
        raise MalformedParameterError("Parameter 'length' must be -1 or a positive integer.")

    search_value, search_regex = _parse_search(raw.get("search"))
    columns = [
        _parse_one_column_at(i, c) for i, c in enumerate(_as_list("columns", raw.get("columns")))
    ]
    order = [
        _parse_one_order_at(i, o) for i, o in enumerate(_as_list("order", raw.get("order")))
    ]

    return RequestParams(
        draw=coerce_draw(raw.get("draw")),
        start=start,
        length=config.validate_length(length),
        order=order,
        search_value=search_value,
        search_regex=search_regex,
        columns=columns,
    )


def datatables_params(request: Request) -> RequestParams:
    """
    FastAPI dependency parsing a GET DataTables request from the query string.

    Example:
        @app.get("/users/data")
        def users(params: RequestParams = Depends(datatables_params)):
            ...
    """
    raw = unflatten_query_params(request.query_params.multi_items())
    return normalize_request(raw, _config_from_app(request))


async def datatables_params_from_body(request: Request) -> RequestParams:
    """
    FastAPI dependency parsing a POST DataTables request.

    Accepts a JSON body or a form-encoded body with bracket keys.
    """
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        try:
            raw = await request.json()
        except ValueError as e:
            raise MalformedParameterError(f"Request body is not valid JSON: {e}") from e
        if not isinstance(raw, Mapping):
            raise MalformedParameterError("Request body must be a JSON object.")
    else:
        form = await request.form()
        raw = unflatten_query_params(form.multi_items())
    return normalize_request(raw, _config_from_app(request))


def _config_from_app(request: Request) -> Optional[DataTablesConfig]:
    """Configuration attached with ``app.state.datatables_config``, if any."""
    config = getattr(request.app.state, "datatables_config", None)
    return config if isinstance(config, DataTablesConfig) else None
