"""
Scenario loading shared by the CLI commands.

A scenario is a callable taking a Controller and posting the initial
events, referenced as "package.module:function".
"""

import importlib
from typing import Callable

from simkernel.runtime.controller import Controller

Seed = Callable[[Controller], None]


class ScenarioError(Exception):
    """Raised when a scenario reference cannot be resolved."""
    pass


def load_scenario(ref: str) -> Seed:
    module_name, sep, attr = ref.partition(":")
    if not sep or not module_name or not attr:
        raise ScenarioError(f"Scenario must look like module:function, got {ref!r}")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ScenarioError(f"Cannot import {module_name}: {e}") from e
    seed = getattr(module, attr, None)
    if not callable(seed):
        raise ScenarioError(f"{ref} is not a callable")
    return seed
