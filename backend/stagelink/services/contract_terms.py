from __future__ import annotations

from typing import Any, Mapping, Optional

from ..schemas.contract import ContractTerms, RadiusClause
from . import lineup

RADIUS_PLACEHOLDER = "Radius clause details to be confirmed."


def _fmt_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def _unit(value: float, unit: str) -> str:
    unit = (unit or "").strip()
    if value == 1 and unit.endswith("s"):
        return unit[:-1]
    return unit


def radius_summary(clause: Optional[RadiusClause | Mapping[str, Any]]) -> Optional[str]:
    """Display sentence for a radius clause.

    Disabled or missing clauses have no summary. An enabled clause missing
    either the distance or the time restriction gets a placeholder.
    """
    if clause is None:
        return None
    if not isinstance(clause, RadiusClause):
        clause = RadiusClause.model_validate(dict(clause))
    if not clause.enabled:
        return None
    if clause.distance is None or clause.time_restriction is None:
        return RADIUS_PLACEHOLDER
    return (
        f"The artist agrees not to perform within {_fmt_number(clause.distance)} "
        f"{_unit(clause.distance, clause.distance_unit)} of the venue for "
        f"{_fmt_number(clause.time_restriction)} "
        f"{_unit(clause.time_restriction, clause.time_unit)} before and after the event."
    )


def prepare_terms(terms: ContractTerms | Mapping[str, Any] | None) -> dict:
    """Validate terms and store the performer lineup in normalized order."""
    if terms is None:
        terms = ContractTerms()
    elif not isinstance(terms, ContractTerms):
        terms = ContractTerms.model_validate(dict(terms))
    data = terms.model_dump(mode="json", exclude_none=True)
    data["performers"] = lineup.normalize_lineup(terms.performers)
    return data
