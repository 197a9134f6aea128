"""Input validation at the repository boundary."""

from typing import TypeVar

from pydantic import BaseModel, ValidationError

from ..errors import ValidationFailed

M = TypeVar("M", bound=BaseModel)


def parse_input(schema: type[M], **data) -> M:
    """Validate raw input against a schema, raising ValidationFailed on error."""
    try:
        return schema(**data)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'input'}: {err['msg']}"
            for err in e.errors()
        )
        raise ValidationFailed(problems) from e
