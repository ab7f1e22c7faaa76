from pydantic import ValidationError as SchemaError

from errors import ValidationError
from models import UserSettings


def validate_settings(data: dict) -> UserSettings:
    try:
        return UserSettings.model_validate(data)
    except SchemaError as e:
        raise ValidationError(str(e))
