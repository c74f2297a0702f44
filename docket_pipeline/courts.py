"""Court catalog and region presets used to fill an empty court filter."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

# mi_surrounding_state_first leaves out ca6 so circuit opinions do not crowd
# out the trial and state courts.
REGION_COURTS: Dict[str, List[str]] = {
    "mi_surrounding_state_first": [
        "mied", "miwd", "mich", "michctapp", "ohioctapp", "illappct",
    ],
    "mi_surrounding_all": [
        "mied", "miwd", "ca6", "mich", "michctapp", "ohioctapp", "illappct",
    ],
    "mi_surrounding": [
        "mied", "miwd", "ca6", "ohioctapp", "illappct",
        "ohnd", "ohsd", "innd", "insd", "ilnd", "ilcd", "ilsd",
        "wied", "wiwd", "mnd",
    ],
}


def normalize_courts(courts: Any) -> List[str]:
    """Coerce a caller-supplied court list to stripped, non-empty ids."""
    if not isinstance(courts, (list, tuple)):
        return []
    out: List[str] = []
    for c in courts:
        if c is None:
            continue
        cid = str(c).strip()
        if cid:
            out.append(cid)
    return out


def region_courts(region: Optional[str]) -> Optional[List[str]]:
    """Return the preset court list for ``region``, or None if unknown."""
    if not region:
        return None
    preset = REGION_COURTS.get(region.strip())
    return list(preset) if preset is not None else None


def known_regions() -> Iterable[str]:
    return REGION_COURTS.keys()
