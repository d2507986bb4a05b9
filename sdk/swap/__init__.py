"""
Lock lifecycle coordination for htlc-bridge.
"""

from .executor import LockExecutor

__all__ = ["LockExecutor"]
