"""Input validation through pydantic request models."""

from typing import Annotated, Optional, Type, TypeVar

from pydantic import BaseModel, StringConstraints, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from ..exceptions import ValidationError
from ..result import Result

M = TypeVar("M", bound=BaseModel)

# Ids, names and actions: non-empty strings, compared verbatim
Identifier = Annotated[str, StringConstraints(min_length=1)]

_identifier_adapter = TypeAdapter(Identifier)


def _to_validation_error(e: PydanticValidationError, field_name: Optional[str] = None) -> ValidationError:
    errors = []
    for err in e.errors():
        location = ".".join(str(part) for part in err["loc"])
        errors.append({
            "field": ".".join(part for part in (field_name, location) if part),
            "message": err["msg"],
        })
    first = errors[0]
    return ValidationError(f"Invalid {first['field']}: {first['message']}", details={"errors": errors})


def validate_input(model: Type[M], **data) -> Result[M]:
    """Build ``model`` from ``data``; pydantic failures become ValidationError."""
    try:
        return Result.ok(model(**data))
    except PydanticValidationError as e:
        return Result.fail(_to_validation_error(e))


def validate_ids(**ids) -> Result[None]:
    """Check that every keyword value is a non-empty string."""
    for field_name, value in ids.items():
        try:
            _identifier_adapter.validate_python(value, strict=True)
        except PydanticValidationError as e:
            return Result.fail(_to_validation_error(e, field_name=field_name))
    return Result.ok()
