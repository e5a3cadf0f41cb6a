"""
Strict Base Models for Grader Input/Output Validation

This module provides base classes with strict validation settings to harden
the contract between the content layer and the grading engine.

MOTIVATION:
    Descriptor mismatches between the content pipeline and the grader are a
    common source of silent grading bugs. By enforcing strict validation:
    - Unknown fields are rejected (extra="forbid")
    - Type mismatches fail fast with clear error messages
    - camelCase keys from the content layer validate without remapping

Usage:
    # For descriptors consumed by the grader
    class Exercise(StrictInput):
        expected_answer: str

    Exercise.model_validate({"expectedAnswer": "x = 1"})  # OK
    Exercise(expected_answer="x = 1")  # OK

    # For results handed back to callers
    class GradingResult(FrozenOutput):
        is_correct: bool

Architecture:
    Content layer → StrictInput (extra="forbid") → Grader
    Grader → FrozenOutput (immutable) → Caller
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class StrictInput(BaseModel):
    """
    Base model for descriptors coming into the grader.

    Rejects any fields not explicitly declared in the model, catching
    content typos at load time rather than at grading time.

    Features:
        - extra="forbid": Unknown fields raise ValidationError
        - alias_generator=to_camel: Accepts camelCase keys
        - populate_by_name=True: Still accepts snake_case keys
        - validate_default=True: Validates default values

    Note: Strings are NOT stripped. Whitespace in expected answers and
    predicted output is significant for some strategies.
    """

    model_config = ConfigDict(
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
        validate_default=True,
    )


class FrozenOutput(BaseModel):
    """
    Base model for immutable results produced by the grader.

    Features:
        - frozen=True: Results cannot be mutated after construction
        - alias_generator=to_camel: model_dump(by_alias=True) yields camelCase
        - populate_by_name=True: Construct with snake_case names
    """

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )
