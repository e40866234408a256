LIKE_ESCAPE = "\\"


def contains_pattern(text: str) -> str:
    """``ilike`` pattern matching ``text`` literally anywhere in a column."""
    escaped = (
        text.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )
    return f"%{escaped}%"
