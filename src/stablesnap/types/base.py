"""Base model class for all stablesnap models with serialization support."""

from typing import Any, Dict
from pydantic import BaseModel, ConfigDict


class SnapBaseModel(BaseModel):
    """Base model for all stablesnap models with built-in serialization.

    Provides common functionality for all stablesnap models including:
    - Serialization to dictionary via to_dict()
    - Consistent configuration
    - Proper handling of nested models
    """
    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        use_enum_values=True,
        validate_assignment=True
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary for serialization.

        Recursively converts nested SnapBaseModel instances to dictionaries.
        Tuple paths are rendered as POSIX strings so the result is JSON-safe.

        Returns:
            Dictionary representation suitable for JSON serialization
        """
        data = self.model_dump(by_alias=False, exclude_none=True)

        def convert_nested(obj):
            if isinstance(obj, SnapBaseModel):
                return obj.to_dict()
            elif isinstance(obj, dict):
                return {convert_key(k): convert_nested(v) for k, v in obj.items()}
            elif isinstance(obj, (list, set, frozenset)):
                return [convert_nested(item) for item in obj]
            elif isinstance(obj, tuple):
                return "/".join(str(part) for part in obj)
            elif hasattr(obj, 'value'):  # Handle enums
                return obj.value
            elif hasattr(obj, '__fspath__'):
                return str(obj)
            return obj

        def convert_key(key):
            if isinstance(key, tuple):
                return "/".join(str(part) for part in key)
            return key

        return convert_nested(data)
