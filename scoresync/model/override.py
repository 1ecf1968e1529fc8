from .base import BaseModel
from .enum import GradeChannel, MismatchReason
from .id import CourseID, EnrollmentID, UserID


class OverrideGradeSnapshot(BaseModel):
    grades: dict[EnrollmentID, float] = {}

    def get(self, enrollment_id: EnrollmentID | None) -> float | None:
        if enrollment_id is None:
            return None
        return self.grades.get(enrollment_id)

    def __contains__(self, enrollment_id: object) -> bool:
        return enrollment_id in self.grades

    def __len__(self) -> int:
        return len(self.grades)


class EnrollmentMap(BaseModel):
    course_id: CourseID
    enrollments: dict[UserID, EnrollmentID] = {}

    def resolve(self, user_id: UserID) -> EnrollmentID | None:
        return self.enrollments.get(user_id)

    def __len__(self) -> int:
        return len(self.enrollments)


class Mismatch(BaseModel):
    """A student whose remote value did not converge; `channel` says which value was checked."""

    user_id: UserID
    enrollment_id: EnrollmentID | None = None
    expected: float
    actual: float | None = None
    diff: float | None = None
    reason: MismatchReason | None = None
    channel: GradeChannel = GradeChannel.Override
