from msgspec import Struct, json

__all__ = ("BaseStruct",)


class BaseStruct(Struct):
    """Base class for structured configuration models."""

    def to_json(self) -> str:
        """Convert the struct to a JSON string."""
        return json.encode(self).decode("utf-8")
