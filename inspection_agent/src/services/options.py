# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Decoding of the raw ``services.<name>.options`` tables.

Options stay undecoded in the loaded configuration until the registry looks
up the parser registered for the service's type.
"""

import threading

from enum import Enum
from typing import Any, Callable, Type, TypeVar
from pydantic import BaseModel, ValidationError

T = TypeVar("T", bound=BaseModel)

OptionsParser = Callable[[dict[str, Any]], BaseModel]

_parsers: dict[str, OptionsParser] = {}
_parsers_lock = threading.RLock()


def type_key(service_type: str | Enum) -> str:
    return service_type.value if isinstance(service_type, Enum) else service_type


def register_options_parser(service_type: str | Enum, parser: OptionsParser) -> None:
    with _parsers_lock:
        _parsers[type_key(service_type)] = parser


def get_options_parser(service_type: str | Enum) -> OptionsParser | None:
    with _parsers_lock:
        return _parsers.get(type_key(service_type))


def parse_options(model: Type[T], raw: dict[str, Any], type_name: str) -> T:
    try:
        return model.model_validate(raw or {})
    except ValidationError as e:
        raise ValueError(f"decode {type_name} options: {e}") from e
