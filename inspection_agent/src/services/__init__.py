# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""External services exposed to the agents as tools.

Importing this package registers the options parser and factory of every
built-in service type.
"""

from . import jira, opensearch, pagerduty, prometheus  # noqa: F401
from .base import BaseService, ServiceInterface, ServiceMeta, ServiceResponse, ServiceType
from .registry import ServiceRegistry, register_service, service_factories
from .options import register_options_parser

__all__ = [
    "BaseService",
    "ServiceInterface",
    "ServiceMeta",
    "ServiceRegistry",
    "ServiceResponse",
    "ServiceType",
    "register_options_parser",
    "register_service",
    "service_factories",
]
