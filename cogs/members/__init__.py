"""
Members Package

Member panel command for linking shop accounts to tier roles.
"""

from .commands import MembersCog

__all__ = ["MembersCog"]
