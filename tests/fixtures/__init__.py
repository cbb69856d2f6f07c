"""Test fixtures package."""

from .fake_driver import FakeCursor, FakeRawConnection, FakeVar, FakeVarCursor, NotSupportedError

__all__ = [
    "FakeCursor",
    "FakeRawConnection",
    "FakeVar",
    "FakeVarCursor",
    "NotSupportedError",
]
