"""Annotated field types that normalize absent values at the model boundary."""

from typing import Annotated, Any

from pydantic import BeforeValidator


def _none_to(default_factory):
    def _coerce(value: Any) -> Any:
        return default_factory() if value is None else value
    return _coerce


# None (or a missing key in a persisted record) becomes "" or False
OptionalStr = Annotated[str, BeforeValidator(_none_to(str))]
OptionalBool = Annotated[bool, BeforeValidator(_none_to(bool))]
