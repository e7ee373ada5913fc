"""Input and output schemas for the orgpass engines."""

from typing import Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from orgpass.errors import ValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)


def parse_input(model: Type[ModelT], **data) -> ModelT:
    """
    Validate keyword arguments against a pydantic model.

    Raises:
        ValidationError: With the pydantic field errors in ``details``
    """
    try:
        return model(**data)
    except PydanticValidationError as e:
        errors = [
            {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
            for err in e.errors()
        ]
        message = errors[0]["message"] if errors else "Invalid input"
        raise ValidationError(message, details={"errors": errors}) from e
