from bson import ObjectId
from app.exceptions import InvalidInputError


def parse_object_id(value, label: str = "ID") -> ObjectId:
    if isinstance(value, ObjectId):
        return value
    if not value or not ObjectId.is_valid(str(value)):
        raise InvalidInputError(f"Invalid {label} format")
    return ObjectId(str(value))
