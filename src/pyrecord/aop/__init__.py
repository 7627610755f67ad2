# Copyright 2026 Firefly Software Solutions Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Interception pipeline: member catalog, guard and alias rewrite stages, weaver."""

from pyrecord.aop.catalog import (
    FORBIDDEN_MEMBERS,
    candidate_operations,
    collect_member_names,
    is_candidate,
    is_forbidden_member,
    is_private_member,
)
from pyrecord.aop.registry import InterceptionRegistry, interception_of
from pyrecord.aop.stages import AliasRewriteStage, GuardStage, InterceptionStage, require_ready
from pyrecord.aop.types import (
    AliasResolver,
    AspectOrder,
    Invocation,
    OperationDescriptor,
    Readiness,
    ReadinessFlag,
    mark_ready,
    readiness_of,
)
from pyrecord.aop.weaver import build_stages, compose, install_interception

__all__ = [
    "FORBIDDEN_MEMBERS",
    "AliasResolver",
    "AliasRewriteStage",
    "AspectOrder",
    "GuardStage",
    "InterceptionRegistry",
    "InterceptionStage",
    "Invocation",
    "OperationDescriptor",
    "Readiness",
    "ReadinessFlag",
    "build_stages",
    "candidate_operations",
    "collect_member_names",
    "compose",
    "install_interception",
    "interception_of",
    "is_candidate",
    "is_forbidden_member",
    "is_private_member",
    "mark_ready",
    "readiness_of",
    "require_ready",
]
