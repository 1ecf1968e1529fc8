from __future__ import annotations

import typing as t

import pydantic as p
import pydantic_core.core_schema as core_schema


class CanvasID(str):
    """
    Canvas identifiers arrive as JSON numbers from the REST API and as strings
    from GraphQL; we always hold them as strings so that lookups never miss on
    a type mismatch
    """

    kind: t.ClassVar[str] = "canvas"

    def __new__(cls, v: CanvasID | str | int) -> t.Self:
        if isinstance(v, bool) or not isinstance(v, (str, int)):
            raise ValueError(f"invalid {cls.__name__}: {v!r}")
        s = str(v).strip()
        if not s:
            raise ValueError(f"invalid {cls.__name__}: must not be empty")
        return super().__new__(cls, s)

    def __init_subclass__(cls, kind: str | None = None, **kwargs: t.Any):
        super().__init_subclass__(**kwargs)
        if kind is not None:
            cls.kind = kind

    @classmethod
    def validate(cls, v: CanvasID | str | int, _: p.ValidationInfo) -> t.Self:
        return cls(v)

    @classmethod
    def __get_pydantic_json_schema__(cls, src: t.Any, handler: p.GetJsonSchemaHandler) -> p.json_schema.JsonSchemaValue:
        return {
            "type": "string",
        }

    @classmethod
    def __get_pydantic_core_schema__(cls, src: t.Any, handler: p.GetCoreSchemaHandler) -> core_schema.CoreSchema:
        """
        accept str or int (but not bool), produce an instance of cls
        """
        from_wire_schema = core_schema.with_info_plain_validator_function(cls.validate)
        to_str = core_schema.plain_serializer_function_ser_schema(cls.__str__)

        return core_schema.json_or_python_schema(
            json_schema=from_wire_schema,
            python_schema=core_schema.union_schema([
                core_schema.is_instance_schema(cls),
                from_wire_schema,
            ]),
            serialization=to_str,
        )

    def __hash__(self) -> int:
        return str.__hash__(self)

    def __str__(self) -> str:
        return str.__str__(self)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {str.__str__(self)}>"


# fmt: off
class CourseID(CanvasID, kind="course"): ...
class UserID(CanvasID, kind="user"): ...
class EnrollmentID(CanvasID, kind="enrollment"): ...
class OutcomeID(CanvasID, kind="outcome"): ...
class AssignmentID(CanvasID, kind="assignment"): ...
class SubmissionID(CanvasID, kind="submission"): ...
class RubricID(CanvasID, kind="rubric"): ...
class RubricAssociationID(CanvasID, kind="rubric_association"): ...
class RubricCriterionID(CanvasID, kind="rubric_criterion"): ...
class CustomGradeStatusID(CanvasID, kind="custom_grade_status"): ...
# fmt: on
