"""
Kernel configuration from environment variables.

Environment Variables:
    SIMKERNEL_FAILURE_POLICY: abort, continue - default: abort
    SIMKERNEL_END_TIME: Last simulated instant to dispatch - default: unbounded
    SIMKERNEL_TRACE_DISPATCH: 1 to log every dispatch at DEBUG - default: 0
    SIMKERNEL_METRICS_ENABLED: true/false - default: false
    SIMKERNEL_METRICS_PORT: HTTP port for /metrics - default: 8080
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class FailurePolicy(str, Enum):
    """What the controller does with a failure nothing awaits."""
    ABORT = "abort"
    CONTINUE = "continue"

    @staticmethod
    def parse(value: Optional[str], default: "FailurePolicy") -> "FailurePolicy":
        if not value:
            return default
        try:
            return FailurePolicy(value.strip().lower())
        except ValueError:
            return default


def _env_int(key: str) -> Optional[int]:
    val = os.getenv(key)
    if not val:
        return None
    try:
        parsed = int(val)
    except ValueError:
        return None
    return parsed if parsed >= 0 else None


@dataclass(frozen=True)
class KernelConfig:
    failure_policy: FailurePolicy = FailurePolicy.ABORT
    end_time: Optional[int] = None
    trace_dispatch: bool = False
    metrics_enabled: bool = False
    metrics_port: int = 8080

    @staticmethod
    def from_env() -> "KernelConfig":
        return KernelConfig(
            failure_policy=FailurePolicy.parse(
                os.getenv("SIMKERNEL_FAILURE_POLICY"), FailurePolicy.ABORT
            ),
            end_time=_env_int("SIMKERNEL_END_TIME"),
            trace_dispatch=os.getenv("SIMKERNEL_TRACE_DISPATCH", "0") == "1",
            metrics_enabled=os.getenv("SIMKERNEL_METRICS_ENABLED", "false").lower() == "true",
            metrics_port=_env_int("SIMKERNEL_METRICS_PORT") or 8080,
        )
