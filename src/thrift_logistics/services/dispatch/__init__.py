"""Rider directory and assignment engine exports."""

from .directory import RiderDirectory, register_rider, set_availability
from .service import AssignmentResult, assign_delivery

__all__ = ["AssignmentResult", "RiderDirectory", "assign_delivery", "register_rider", "set_availability"]
