from typing import Any, List, Sequence, Tuple

_QUOTE_CHARS = ("'", '"', "`")


def translate_qmark_params_to_mysql(sql: str, params: Sequence[Any]) -> Tuple[str, List[Any]]:
    """Translate positional ``?`` placeholders to the ``%s`` format aiomysql expects.

    ``?`` inside quoted literals or identifiers is left alone. Every literal
    ``%`` is doubled because the driver applies ``%``-formatting to the whole
    statement.

    Raises:
        ValueError: If the number of placeholders does not match ``params``.
    """
    result = []
    placeholder_count = 0
    quote = None
    i = 0
    while i < len(sql):
        ch = sql[i]
        if quote is not None:
            if ch == quote:
                if i + 1 < len(sql) and sql[i + 1] == quote:
                    result.append(ch * 2)
                    i += 2
                    continue
                quote = None
            result.append("%%" if ch == "%" else ch)
            i += 1
            continue
        if ch in _QUOTE_CHARS:
            quote = ch
            result.append(ch)
        elif ch == "?":
            placeholder_count += 1
            result.append("%s")
        elif ch == "%":
            result.append("%%")
        else:
            result.append(ch)
        i += 1

    if placeholder_count != len(params):
        raise ValueError(
            f"Placeholder count mismatch: statement has {placeholder_count} '?' "
            f"placeholders but {len(params)} parameters were given."
        )
    return "".join(result), list(params)
