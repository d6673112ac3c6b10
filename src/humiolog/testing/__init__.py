"""
Testing utilities for applications shipping events with humiolog.

Basic utilities (mocks) are always available.
Pytest fixtures require the testing extra: `pip install humiolog[testing]`

Example:
    from humiolog import HumioLogger
    from humiolog.testing import MockSender

    async def test_ships():
        sender = MockSender()
        logger = HumioLogger("token", sender=sender)
        ...
"""

from .mocks import MockSender, SendAttempt

__all__ = ["MockSender", "SendAttempt"]
