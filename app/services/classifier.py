from typing import Any, Iterable, List, Optional, Sequence

from phone_data_core.models import ClassifiedAppEntry

FINANCIAL_KEYWORDS = (
    "bank",
    "finance",
    "pay",
    "wallet",
    "investment",
    "credit",
    "loan",
    "seb",
    "nordea",
    "swish",
    "zettle",
)

REPORT_HEADER = "Installed Apps:"
EMPTY_REPORT_LINE = "No launchable apps found."


def _folded(value: Any) -> str:
    # non-string fields (None included) never match
    return value.casefold() if isinstance(value, str) else ""


def is_financial(name: Optional[str], identifier: Optional[str], keywords: Sequence[str] = FINANCIAL_KEYWORDS) -> bool:
    """Substring match, case-folded, against either the name or the identifier."""
    folded_name = _folded(name)
    folded_ident = _folded(identifier)
    for kw in keywords:
        k = _folded(kw)
        if not k:
            continue
        if k in folded_name or k in folded_ident:
            return True
    return False


def _unpack(entry: Any):
    """Accept (name, identifier) pairs; anything shorter is padded with None."""
    if isinstance(entry, ClassifiedAppEntry):
        return entry.display_name, entry.identifier
    if isinstance(entry, str):
        return entry, None
    try:
        items = list(entry)
    except TypeError:
        return None, None
    items += [None, None]
    return items[0], items[1]


def classify_entries(entries: Iterable[Any], keywords: Sequence[str] = FINANCIAL_KEYWORDS) -> List[ClassifiedAppEntry]:
    out: List[ClassifiedAppEntry] = []
    for entry in entries or []:
        name, ident = _unpack(entry)
        out.append(ClassifiedAppEntry(display_name=name, identifier=ident, is_financial=is_financial(name, ident, keywords)))
    return out


def classify(entries: Iterable[Any], keywords: Sequence[str] = FINANCIAL_KEYWORDS) -> str:
    """
    Build the installed-apps report.
    Input order is kept; no sorting or de-duplication.
    """
    classified = classify_entries(entries, keywords)
    lines = [REPORT_HEADER]
    if not classified:
        lines.append(EMPTY_REPORT_LINE)
    else:
        lines.extend(e.label for e in classified)
    return "\n".join(lines)
