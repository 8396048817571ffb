from __future__ import annotations

from typing import Any, Iterable


def normalize_client_name(text: str | None) -> str:
    """Return the matching key for a client name.

    Names are compared case-insensitively: surrounding whitespace is trimmed,
    inner whitespace runs collapse to a single space and ``casefold`` is applied.
    ``None`` becomes the empty string.
    """
    return " ".join((text or "").split()).casefold()


def normalize_label_list(values: Iterable[Any] | str | None) -> list[str]:
    """Clean a list of labels (practice areas, team members).

    Accepts a list or a ``;``/``,`` separated string. Drops blanks and keeps the
    first spelling of case-insensitive duplicates, in order.
    """
    if values is None:
        return []
    if isinstance(values, str):
        values = values.replace(";", ",").split(",")
    out: list[str] = []
    seen: set[str] = set()
    for raw in values:
        label = " ".join(str(raw).split()) if raw is not None else ""
        key = label.casefold()
        if not label or key in seen:
            continue
        seen.add(key)
        out.append(label)
    return out
