from __future__ import annotations

import logging
import typing as t

from scoresync.lib.vendor.canvas import CanvasAPI
from scoresync.model import CourseID, EnrollmentID, EnrollmentMap, UserID

logger = logging.getLogger(__name__)


class EnrollmentDirectory(object):
    """Resolves student user ids to enrollment ids, one fetch per course.

    Enrollments do not change during a reconciliation pass, so the map is kept
    for the lifetime of the directory; create a new directory per pass.
    """

    def __init__(self, client: CanvasAPI) -> None:
        self.client = client
        self._maps: dict[CourseID, EnrollmentMap] = {}

    async def load(self, course_id: CourseID) -> EnrollmentMap:
        if course_id in self._maps:
            return self._maps[course_id]

        enrollments = await self.client.get_all_pages(
            f"/api/v1/courses/{course_id}/enrollments",
            {"type[]": ["StudentEnrollment"]},
            operation="load_enrollments",
        )
        mapping: dict[UserID, EnrollmentID] = {}
        for e in enrollments or []:
            if not isinstance(e, t.Mapping):
                continue
            user_id, enrollment_id = e.get("user_id"), e.get("id")
            if user_id and enrollment_id:
                mapping[UserID(user_id)] = EnrollmentID(enrollment_id)

        logger.debug("loaded enrollments", extra={"course_id": course_id, "count": len(mapping)})
        rs = self._maps[course_id] = EnrollmentMap(course_id=course_id, enrollments=mapping)
        return rs
