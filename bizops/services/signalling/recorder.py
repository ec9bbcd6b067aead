"""
Signal Recorder
Writes relayed signals and screen-share sessions to the database off the event loop
"""
from typing import Callable

from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from bizops.models.signalling import ScreenShare, WebRTCSignal


class DatabaseSignalRecorder:
    """Each write uses its own short-lived session from ``session_factory``"""

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    async def record_signal(self, **fields) -> None:
        await run_in_threadpool(self._write, WebRTCSignal, fields)

    async def record_screen_share(self, **fields) -> None:
        await run_in_threadpool(self._write, ScreenShare, fields)

    def _write(self, model, fields: dict) -> None:
        db = self.session_factory()
        try:
            db.add(model(**fields))
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()
