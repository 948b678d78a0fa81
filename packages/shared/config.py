from __future__ import annotations

import logging
from typing import Any, List, Sequence, Tuple

from pydantic import BaseModel, Field, ValidationError, field_validator

from packages.core.keepalive.types import MAX_INTERVAL_SECONDS, KeepAliveMethod

log = logging.getLogger(__name__)

DEFAULT_METHOD = KeepAliveMethod.HYBRID
DEFAULT_INTERVAL_SECONDS = 30


class AppConfig(BaseModel):
    method: KeepAliveMethod = DEFAULT_METHOD
    interval_seconds: int = Field(default=DEFAULT_INTERVAL_SECONDS, gt=0, le=MAX_INTERVAL_SECONDS)

    @field_validator("method", mode="before")
    @classmethod
    def _method_by_name(cls, value: Any) -> Any:
        if isinstance(value, str):
            return KeepAliveMethod.parse(value)
        return value

    @classmethod
    def from_args(cls, argv: Sequence[str]) -> "AppConfig":
        cfg, _ = parse_args(argv)
        return cfg


def parse_args(argv: Sequence[str]) -> Tuple[AppConfig, List[str]]:
    """
    Build AppConfig from ``[method] [interval]`` positional arguments.

    Each argument falls back to its default on its own when it can't be
    used. Returns the config and a human-readable note per fallback.
    """
    values: dict = {}
    problems: List[str] = []

    if len(argv) > 0:
        try:
            values["method"] = AppConfig.model_validate({"method": argv[0]}).method
        except ValidationError:
            problems.append(
                f"Unknown method '{argv[0]}', using {DEFAULT_METHOD.value}."
            )

    if len(argv) > 1:
        try:
            values["interval_seconds"] = AppConfig.model_validate(
                {"interval_seconds": argv[1]}
            ).interval_seconds
        except ValidationError:
            problems.append(
                f"Invalid interval '{argv[1]}', using {DEFAULT_INTERVAL_SECONDS} seconds."
            )

    for problem in problems:
        log.warning(problem)

    return AppConfig(**values), problems
