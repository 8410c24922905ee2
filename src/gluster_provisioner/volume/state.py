# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

from enum import Enum


class ProvisioningState(str, Enum):
    """
    Tells the calling controller whether a provision result is final.
    """

    FINISHED = "Finished"
    IN_BACKGROUND = "InBackground"
    NO_CHANGE = "NoChange"
