"""Downtime reason tree — two-level static taxonomy.

Parents group child reasons; a closed downtime event records the child as
reason_code/label and the parent as parent_reason_code/label.
"""

from typing import NamedTuple


class Reason(NamedTuple):
    code: str
    label: str
    children: tuple["Reason", ...] = ()


REASON_TREE: tuple[Reason, ...] = (
    Reason("POWER", "Power", (
        Reason("GRID", "Grid"),
        Reason("INTERNAL", "Internal"),
    )),
    Reason("CHANGEOVER", "Changeover", (
        Reason("TOOLING", "Tooling"),
    )),
    Reason("MECHANICAL", "Mechanical", (
        Reason("BREAKDOWN", "Breakdown"),
        Reason("WEAR", "Wear & Tear"),
        Reason("VIBRATION", "Vibration"),
    )),
    Reason("QUALITY", "Quality", (
        Reason("DEFECT", "Defective Output"),
        Reason("CALIBRATION", "Calibration Required"),
    )),
    Reason("MATERIAL", "Material", (
        Reason("SHORTAGE", "Material Shortage"),
        Reason("JAM", "Material Jam"),
    )),
    Reason("OPERATOR", "Operator", (
        Reason("BREAK", "Scheduled Break"),
        Reason("TRAINING", "Training"),
        Reason("ABSENT", "Operator Absent"),
    )),
)


def find_reason(code: str) -> tuple[Reason | None, Reason] | None:
    """Look up a reason code anywhere in the tree.

    Returns (parent, reason), with parent None for top-level codes, or None
    if the code is unknown.
    """
    for parent in REASON_TREE:
        if parent.code == code:
            return None, parent
        for child in parent.children:
            if child.code == code:
                return parent, child
    return None
