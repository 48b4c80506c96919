"""
Add-on selection rules.

Pure functions over a snapshot of the currently selected add-ons. Only
selections whose ``group_id`` matches the group being checked count as
siblings.
"""

from typing import List, Sequence

from storefront.schemas import AddonGroupSchema, AddonSchema


def selected_in_group(group: AddonGroupSchema, current: Sequence[AddonSchema]) -> List[AddonSchema]:
    """Selections that belong to ``group``."""
    return [a for a in current if a.group_id == group.id]


def is_selected(addon: AddonSchema, current: Sequence[AddonSchema]) -> bool:
    return any(a.id == addon.id for a in current)


def can_toggle(addon: AddonSchema, group: AddonGroupSchema, current: Sequence[AddonSchema]) -> bool:
    """
    Decide whether flipping ``addon`` keeps ``group`` within its bounds.

    Deselecting is refused when the group is required and already sits at
    its floor; selecting is refused once the ceiling is reached.
    """
    siblings = len(selected_in_group(group, current))

    if is_selected(addon, current):
        return not (group.is_required and siblings <= group.min_select)
    return siblings < group.max_select


def is_group_satisfied(group: AddonGroupSchema, current: Sequence[AddonSchema]) -> bool:
    """Non-required groups are always satisfied, even when empty."""
    if not group.is_required:
        return True
    return len(selected_in_group(group, current)) >= group.min_select


def toggle(addon: AddonSchema, group: AddonGroupSchema, current: Sequence[AddonSchema]) -> List[AddonSchema]:
    """
    Return the selection after toggling ``addon``.

    A disallowed toggle returns an unchanged copy of ``current``.
    """
    if not can_toggle(addon, group, current):
        return list(current)
    if is_selected(addon, current):
        return [a for a in current if a.id != addon.id]
    return [*current, addon]
