import asyncio
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from testtracker.core.config import settings
from testtracker.core.logging import get_logger

logger = get_logger("field_updater")

WriteFn = Callable[[str, Dict[str, Any]], Awaitable[Any]]
SnapshotFn = Callable[[str], Any]

_NOTHING_SENT = object()


class FieldWriteError(Exception):
    pass


@dataclass
class PendingEdit:
    latest_value: Any = None
    timer: Optional[asyncio.TimerHandle] = None
    in_flight: bool = False
    sent_value: Any = _NOTHING_SENT
    write_fn: Optional[WriteFn] = None
    get_latest_record: Optional[SnapshotFn] = None
    task: Optional["asyncio.Task[None]"] = None

    @property
    def state(self) -> str:
        if self.in_flight:
            return "writing"
        if self.timer is not None:
            return "pending"
        return "idle"


def _identifier(record: Any) -> Optional[str]:
    if isinstance(record, Mapping):
        return record.get("unique_test_id") or record.get("uniqueTestId")
    return getattr(record, "unique_test_id", None)


class DebouncedFieldUpdater:
    """
    Collapses rapid edits of one ``(record, field)`` into a single delayed write.

    Every ``schedule`` call restarts that key's timer. When the timer fires the
    record is looked up again through ``get_latest_record`` and the latest value
    is written. Only one write per key is in flight; if the timer fires during a
    write it does nothing, and the write re-arms the timer on completion when the
    value moved on in the meantime. Failed writes are reported through
    ``on_error`` and are not retried; callers keep their optimistic value.
    """

    def __init__(
        self,
        delay: Optional[float] = None,
        write_timeout: Optional[float] = None,
        on_error: Optional[Callable[[str], None]] = None,
    ):
        self.delay = settings.DEBOUNCE_MS / 1000 if delay is None else delay
        self.write_timeout = settings.WRITE_TIMEOUT_SECONDS if write_timeout is None else write_timeout
        self.on_error = on_error
        self._pending: Dict[Tuple[str, str], PendingEdit] = {}
        self._closed = False

    def schedule(
        self,
        record_key: str,
        field_name: str,
        value: Any,
        write_fn: WriteFn,
        get_latest_record: SnapshotFn,
    ) -> None:
        if self._closed:
            raise RuntimeError("Field updater has been closed")
        key = (record_key, field_name)
        edit = self._pending.get(key)
        if edit is None:
            edit = self._pending[key] = PendingEdit()
        edit.latest_value = value
        edit.write_fn = write_fn
        edit.get_latest_record = get_latest_record
        self._arm(key, edit)

    def pending(self, record_key: str, field_name: str) -> Optional[PendingEdit]:
        return self._pending.get((record_key, field_name))

    def state(self, record_key: str, field_name: str) -> str:
        edit = self.pending(record_key, field_name)
        return edit.state if edit else "idle"

    def _arm(self, key: Tuple[str, str], edit: PendingEdit) -> None:
        if edit.timer is not None:
            edit.timer.cancel()
        loop = asyncio.get_running_loop()
        edit.timer = loop.call_later(self.delay, self._fire, key)

    def _fire(self, key: Tuple[str, str]) -> None:
        edit = self._pending.get(key)
        if edit is None:
            return
        edit.timer = None
        if edit.in_flight:
            logger.debug(f"Write for {key} still in flight, deferring")
            return
        # Flag is set before the first await so a second fire sees it
        edit.in_flight = True
        edit.task = asyncio.get_running_loop().create_task(self._write(key, edit))

    async def _write(self, key: Tuple[str, str], edit: PendingEdit) -> None:
        record_key, field_name = key
        value = edit.latest_value
        edit.sent_value = value
        try:
            record = edit.get_latest_record(record_key)
            identifier = _identifier(record) if record is not None else None
            if not identifier:
                logger.warning(f"Record {record_key} not found, dropping update of {field_name}")
                return

            result = await asyncio.wait_for(edit.write_fn(identifier, {field_name: value}), self.write_timeout)
            if result is not None and getattr(result, "success", True) is False:
                raise FieldWriteError(getattr(result, "message", None) or "update rejected")
            logger.info(f"Saved {field_name} for {record_key} ({identifier})")
        except asyncio.TimeoutError:
            self._report(f"Timed out saving {field_name} for {record_key}")
        except Exception as e:
            self._report(f"Failed to save {field_name} for {record_key}: {e}")
        finally:
            edit.in_flight = False
            edit.task = None
            self._settle(key, edit)

    def _settle(self, key: Tuple[str, str], edit: PendingEdit) -> None:
        if self._closed:
            self._pending.pop(key, None)
            return
        if edit.timer is not None:
            return
        if edit.latest_value != edit.sent_value:
            # Edited while the write was out and that timer already fired
            self._arm(key, edit)
        else:
            self._pending.pop(key, None)

    def _report(self, message: str) -> None:
        logger.error(message)
        if self.on_error is not None:
            self.on_error(message)

    async def wait_idle(self) -> None:
        """Wait until no timer is armed and no write is in flight."""
        while True:
            tasks = [e.task for e in self._pending.values() if e.task is not None]
            if tasks:
                await asyncio.gather(*tasks, return_exceptions=True)
                continue
            if not any(e.timer is not None for e in self._pending.values()):
                return
            await asyncio.sleep(self.delay / 2 or 0.01)

    def close(self) -> None:
        """Cancel every armed timer. Writes already in flight are left to finish."""
        self._closed = True
        for key, edit in list(self._pending.items()):
            if edit.timer is not None:
                edit.timer.cancel()
                edit.timer = None
            if not edit.in_flight:
                self._pending.pop(key, None)

    async def aclose(self) -> None:
        self.close()
        tasks = [e.task for e in self._pending.values() if e.task is not None]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
