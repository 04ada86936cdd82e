"""Base model for pyvehiclesim messages.

Every message model inherits from :class:`SimBaseModel` which provides:

* ``alias_generator=to_camel`` so snake_case fields are published with
  camelCase JSON keys (``vehicleId``) while still accepting either form
  on input.
* Frozen instances, so a message handed to another thread can never be
  modified under its feet.
* :meth:`SimBaseModel.to_json` / :meth:`SimBaseModel.from_json` UTF-8
  helpers that map validation failures to :class:`MessageDecodeError`.
"""

from __future__ import annotations

import time
from typing import Self

from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from pyvehiclesim.exceptions import MessageDecodeError


def now_ms() -> int:
    """Current epoch timestamp in milliseconds."""
    return int(time.time() * 1000)


class SimBaseModel(BaseModel):
    """Base for published/received messages."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
        ser_json_inf_nan="constants",
    )

    def to_json(self) -> bytes:
        """Serialize to a UTF-8 encoded JSON document with camelCase keys."""
        return self.model_dump_json(by_alias=True).encode("utf-8")

    @classmethod
    def from_json(cls, payload: bytes | str) -> Self:
        """Parse a UTF-8 JSON document produced by :meth:`to_json`."""
        if isinstance(payload, bytes):
            try:
                payload = payload.decode("utf-8")
            except UnicodeDecodeError as exc:
                raise MessageDecodeError(f"{cls.__name__} payload is not valid UTF-8") from exc
        try:
            return cls.model_validate_json(payload)
        except ValidationError as exc:
            raise MessageDecodeError(f"Invalid {cls.__name__} payload: {exc}") from exc
