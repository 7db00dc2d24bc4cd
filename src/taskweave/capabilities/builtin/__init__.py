"""
capabilities/builtin/ — Capabilities shipped with taskweave.
"""

from taskweave.capabilities.builtin.filesystem import FILESYSTEM_CAPABILITIES
from taskweave.capabilities.builtin.utility import UTILITY_CAPABILITIES

__all__ = ["FILESYSTEM_CAPABILITIES", "UTILITY_CAPABILITIES"]
