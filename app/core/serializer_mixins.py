"""
Serializer mixins shared by the API serializers.

Available Mixins:
    TimestampMixin: Include created_at/updated_at in ModelSerializer output
    CamelCaseAliasMixin: Accept camelCase request keys as field aliases

Usage:
    from core.serializer_mixins import CamelCaseAliasMixin, TimestampMixin

    class ReleaseEscrowSerializer(CamelCaseAliasMixin, serializers.Serializer):
        payment_intent_id = serializers.CharField()
        # accepts {"paymentIntentId": "pi_xxx"} and {"payment_intent_id": "pi_xxx"}
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def camel_to_snake(name: str) -> str:
    """missionId -> mission_id"""
    return _CAMEL_BOUNDARY.sub("_", name).lower()


class TimestampMixin:
    """
    Add read-only created_at/updated_at to a ModelSerializer.

    Only added when the model has the fields and Meta.fields does not
    already list them.
    """

    def get_field_names(self, declared_fields: Any, info: Any) -> list[str]:
        fields = list(super().get_field_names(declared_fields, info))  # type: ignore[misc]
        for name in ("created_at", "updated_at"):
            if hasattr(info.model, name) and name not in fields:
                fields.append(name)
        return fields


class CamelCaseAliasMixin:
    """
    Map camelCase request keys onto snake_case serializer fields.

    Web clients send missionId / paymentIntentId; Python clients send
    mission_id / payment_intent_id. When both spellings are present the
    snake_case value wins.
    """

    def to_internal_value(self, data: Any) -> Any:
        if hasattr(data, "items"):
            normalized = {}
            for key, value in data.items():
                snake = camel_to_snake(key)
                if snake == key or snake not in data:
                    normalized[snake] = value
            data = normalized
        return super().to_internal_value(data)  # type: ignore[misc]
