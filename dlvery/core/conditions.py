"""Condition flags (perishable / damaged) and the derived delivery type.

`type` is always a function of the two flags, perishable taking precedence
over damaged. Every place that stores or compares a type goes through here.
"""
from typing import Mapping, Tuple

CONDITION_TYPES: Tuple[str, ...] = ("normal", "perishable", "damaged")
CONDITION_FIELDS: Tuple[str, ...] = ("perishable", "damaged")


def derive_type(perishable: bool, damaged: bool) -> str:
    if perishable:
        return "perishable"
    if damaged:
        return "damaged"
    return "normal"


def flags_for_type(condition_type: str) -> dict:
    """Flags for an explicitly chosen type. The two flags are mutually exclusive here."""
    return {
        "perishable": condition_type == "perishable",
        "damaged": condition_type == "damaged",
    }


def priority_score(delivery: Mapping) -> int:
    """1 = perishable, 2 = damaged, 3 = normal. Lower sorts first.

    Looks at both the flags and the stored type, so documents written by
    older clients with only one of the two still rank correctly.
    """
    if delivery.get("perishable") or delivery.get("type") == "perishable":
        return 1
    if delivery.get("damaged") or delivery.get("type") == "damaged":
        return 2
    return 3


def priority_label(delivery: Mapping) -> str:
    return {1: "Perishable", 2: "Damaged", 3: "Normal"}[priority_score(delivery)]
