# -*- encoding: utf-8 -*-
# CyberOps Simulator v0.1.0
# Copyright 2026, the CyberOps Simulator authors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     https://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#

import logging

from cyberops.catalog import Catalog, load_catalog
from cyberops.sim import (
    Host,
    HostStatus,
    RunState,
    SimulatorSettings,
    apply_mitigation,
    clear_penalty_message,
    evaluate_outcome,
    is_lost,
    is_won,
    make_initial_hosts,
    run_episode,
    step,
    train,
)
from cyberops.agents import QAgent

"""
CyberOps Simulator
"""

__title__ = "cyberops"
__version__ = "0.1.0"
__license__ = "Apache 2.0"
__docformat__ = "restructuredtext en"

__all__ = [
    "Catalog",
    "load_catalog",
    "Host",
    "HostStatus",
    "RunState",
    "SimulatorSettings",
    "make_initial_hosts",
    "step",
    "apply_mitigation",
    "clear_penalty_message",
    "is_lost",
    "is_won",
    "evaluate_outcome",
    "run_episode",
    "train",
    "QAgent",
]


logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())
