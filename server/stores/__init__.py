"""Stores package for event tracker persistence."""

from .attendance_store import (
    AttendanceStore,
    get_attendance_store,
    close_attendance_store,
)

__all__ = [
    "AttendanceStore",
    "get_attendance_store",
    "close_attendance_store",
]
