"""Per-viewer visibility of task and schedule instances."""

from collections.abc import Iterable
from enum import Enum
from typing import Optional

from ..models import AssignmentTarget, AssignmentTargetType, Viewer


class Visibility(str, Enum):
    NOT_VISIBLE = "not_visible"
    ASSIGNED = "assigned"
    VIEW_ONLY = "view_only"

    @property
    def is_visible(self) -> bool:
        return self != Visibility.NOT_VISIBLE


class VisibilityFilter:
    """Evaluates assignment and viewer lists against one viewer.

    With no viewer (admin dashboard) everything is Assigned. Group targets
    only match when the viewer's memberships are known and include the
    group; unknown memberships never match.
    """

    def __init__(self, viewer: Optional[Viewer]):
        self.viewer = viewer

    def matches(self, target: AssignmentTarget) -> bool:
        viewer = self.viewer
        if viewer is None:
            return True
        if target.target_type == AssignmentTargetType.ALL:
            return True
        if target.target_type == AssignmentTargetType.ALL_ADMINS:
            return viewer.is_admin
        if target.target_type == AssignmentTargetType.USER:
            return target.user_id is not None and target.user_id == viewer.user_id
        if target.target_type == AssignmentTargetType.GROUP:
            if viewer.group_ids is None or target.group_id is None:
                return False
            return target.group_id in viewer.group_ids
        return False

    def evaluate(
        self,
        assignments: Iterable[AssignmentTarget],
        viewers: Iterable[AssignmentTarget] = (),
    ) -> Visibility:
        if self.viewer is None:
            return Visibility.ASSIGNED
        if any(self.matches(target) for target in assignments):
            return Visibility.ASSIGNED
        if any(self.matches(target) for target in viewers):
            return Visibility.VIEW_ONLY
        return Visibility.NOT_VISIBLE

    def owns(self, user_id: str) -> Visibility:
        """Visibility of a record owned by ``user_id`` (schedules, leave)."""
        return self.evaluate([AssignmentTarget(target_type=AssignmentTargetType.USER, user_id=user_id)])
