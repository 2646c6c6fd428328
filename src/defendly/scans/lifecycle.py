# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Scan lifecycle controller.

Owns the scans a session can see: locally created stubs, server-confirmed rows, and
one polling loop per in-flight scan. All state lives on the controller instance and
is only touched from the event loop. Collections are replaced, never mutated in
place, so observers may compare them by identity.

Polling loops await each tick before sleeping the interval, so a scan never has two
status requests in flight. Stopping a poll cancels its task; a tick that resolves
after its registration was removed is discarded.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from ..errors import ApiError
from ..models.scan import Pagination, ScanRecord, ScanStatus, is_terminal_status
from ..utils.dates import PLACEHOLDER, sort_key_newest_first, utc_now_iso
from ..utils.fields import candidate_scan_ids
from .directory import ScanDirectory
from .normalizer import extract_domain, normalize_scan
from .reports import ScanReports, ScanSubmission

logger = logging.getLogger(__name__)

StatusCallback = Callable[[str, Any], None]


@dataclass(frozen=True)
class PollingRegistration:
    scan_id: str
    cleanup: Callable[[], None]


@dataclass(eq=False)
class _PollState:
    scan_id: str
    on_status: StatusCallback | None = None
    stopped: bool = False
    task: asyncio.Task | None = field(default=None, repr=False)

    def stop(self) -> None:
        self.stopped = True
        if self.task is not None and not self.task.done():
            self.task.cancel()


def merge_scans(local: Iterable[ScanRecord], fetched: Iterable[ScanRecord]) -> list[ScanRecord]:
    """
    Local rows first, then fetched rows no earlier row already covers.

    A fetched row is covered when a local row shares one of its ids or its target URL;
    the target check catches a fresh stub whose id still differs from the backend's.
    Fetched rows repeating an id already merged are dropped too, so ids stay unique.
    """
    merged = list(local)
    seen_ids = {record.id for record in merged}
    local_targets = {record.scan_target for record in merged if record.scan_target != PLACEHOLDER}
    for record in fetched:
        ids = {record.id} | candidate_scan_ids(record.original_scan)
        if ids & seen_ids or record.scan_target in local_targets:
            continue
        merged.append(record)
        seen_ids |= ids
    return merged


def sort_newest_first(records: Iterable[ScanRecord]) -> list[ScanRecord]:
    return sorted(records, key=lambda record: sort_key_newest_first(record.scan_start))


class ScanLifecycleController:
    def __init__(
        self,
        directory: ScanDirectory,
        reports: ScanReports,
        *,
        organization_name: str | None = None,
        poll_interval: float | None = None,
        poll_start_delay: float | None = None,
    ):
        settings = directory.settings
        self.directory = directory
        self.reports = reports
        self.organization_name = organization_name
        self.poll_interval = settings.poll_interval if poll_interval is None else poll_interval
        self.poll_start_delay = settings.poll_start_delay if poll_start_delay is None else poll_start_delay

        self.scans: tuple[ScanRecord, ...] = ()
        self.local_scans: tuple[ScanRecord, ...] = ()
        self.active_polling_ids: frozenset[str] = frozenset()
        self.last_error: ApiError | None = None
        self.pagination: Pagination | None = None

        self._registry: dict[str, PollingRegistration] = {}
        self._states: dict[str, _PollState] = {}
        self._pending_starts: set[asyncio.Task] = set()
        self._closed = False

    @property
    def polling_registry(self) -> Mapping[str, PollingRegistration]:
        return MappingProxyType(self._registry)

    @property
    def closed(self) -> bool:
        return self._closed

    # -- polling ---------------------------------------------------------------

    async def start_polling(self, scan_id: str, on_status: StatusCallback | None = None) -> None:
        """
        Poll `scan_id` until it reaches a terminal status.

        The first status check runs before this coroutine returns; later checks run
        every `poll_interval` seconds in a background task. Already-polled ids are a no-op.
        """
        scan_id = str(scan_id)
        if self._closed:
            logger.debug("Controller closed; not polling %s", scan_id)
            return
        if scan_id in self.active_polling_ids:
            return

        state = _PollState(scan_id=scan_id, on_status=on_status)
        self.active_polling_ids = self.active_polling_ids | {scan_id}
        self._states[scan_id] = state
        self._registry = {**self._registry, scan_id: PollingRegistration(scan_id, state.stop)}
        logger.info("Started polling scan %s", scan_id)

        if await self._tick(state):
            return
        if not state.stopped:
            state.task = asyncio.create_task(self._poll_loop(state), name=f"poll-scan-{scan_id}")

    def stop_polling(self, scan_id: str) -> None:
        """Stop polling `scan_id`; does nothing when it is not being polled."""
        scan_id = str(scan_id)
        registration = self._registry.get(scan_id)
        if registration is not None:
            try:
                registration.cleanup()
            except Exception:  # noqa: BLE001
                logger.exception("Cleanup for scan %s failed", scan_id)
        self._forget(scan_id)

    def is_polling(self, scan_id: str) -> bool:
        return str(scan_id) in self.active_polling_ids

    async def resume_polling(self) -> None:
        """Start polling every visible scan that is still pending or running."""
        candidates = [record.id for record in self.scans if record.is_active and record.id not in self.active_polling_ids]
        for scan_id in dict.fromkeys(candidates):
            await self.start_polling(scan_id)

    async def _poll_loop(self, state: _PollState) -> None:
        while not state.stopped:
            await asyncio.sleep(self.poll_interval)
            if state.stopped:
                return
            if await self._tick(state):
                return

    async def _tick(self, state: _PollState) -> bool:
        """One status check. Returns True when polling for this scan is over."""
        scan_id = state.scan_id
        try:
            raw = await self.directory.get_by_id(scan_id)
            if not self._is_current(state):
                logger.debug("Dropping late status for scan %s", scan_id)
                return True
            if not isinstance(raw, Mapping):
                logger.warning("No data found for scan %s", scan_id)
                return False

            status = str(raw.get("status") or ScanStatus.IN_PROGRESS.value)
            logger.debug("Scan %s status: %s", scan_id, status)
            self._apply_status(scan_id, raw)
            if state.on_status is not None:
                try:
                    state.on_status(status, raw)
                except Exception:  # noqa: BLE001
                    logger.exception("Status callback for scan %s failed", scan_id)

            if is_terminal_status(status):
                state.stopped = True
                self._forget(scan_id)
                logger.info("Stopped polling scan %s (%s)", scan_id, status)
                return True
        except asyncio.CancelledError:
            raise
        except Exception:  # noqa: BLE001
            logger.exception("Error polling scan %s", scan_id)
        return False

    def _is_current(self, state: _PollState) -> bool:
        return not state.stopped and self._states.get(state.scan_id) is state

    def _forget(self, scan_id: str) -> None:
        if scan_id in self._registry:
            self._registry = {key: value for key, value in self._registry.items() if key != scan_id}
        self._states.pop(scan_id, None)
        if scan_id in self.active_polling_ids:
            self.active_polling_ids = self.active_polling_ids - {scan_id}

    def _apply_status(self, scan_id: str, raw: Any) -> None:
        if not isinstance(raw, Mapping):
            return
        ids = candidate_scan_ids(raw) | {scan_id}
        updated = normalize_scan(raw, self.organization_name)

        def replace(records: tuple[ScanRecord, ...]) -> tuple[ScanRecord, ...]:
            if not any(record.id in ids for record in records):
                return records
            return tuple(updated if record.id in ids else record for record in records)

        self.scans = replace(self.scans)
        self.local_scans = replace(self.local_scans)

    # -- submission --------------------------------------------------------------

    async def submit_scan(self, form: ScanSubmission | Mapping[str, Any]) -> ScanRecord:
        """
        Initiate a scan and show it immediately as an in-progress stub.

        Polling for the stub starts after `poll_start_delay`. Initiation errors propagate.
        """
        submission = form if isinstance(form, ScanSubmission) else ScanSubmission.from_mapping(form)
        initiated = await self.reports.initiate(submission)

        now = utc_now_iso()
        stub = normalize_scan(
            {
                "_id": initiated.scan_id,
                "url": submission.scan_target,
                "projectName": submission.project_name or extract_domain(submission.scan_target),
                "organization": submission.organization,
                "createdAt": now,
                "scan_date": now,
                "updatedAt": now,
                "status": ScanStatus.IN_PROGRESS.value,
            },
            submission.organization or self.organization_name,
        )
        self.scans = (stub, *self.scans)
        self.local_scans = (stub, *self.local_scans)
        logger.info("Scan %s submitted for %s", stub.id, submission.scan_target)

        if not self._closed:
            task = asyncio.create_task(self._delayed_start(stub.id), name=f"poll-start-{stub.id}")
            self._pending_starts.add(task)
            task.add_done_callback(self._pending_starts.discard)
        return stub

    async def _delayed_start(self, scan_id: str) -> None:
        await asyncio.sleep(self.poll_start_delay)
        try:
            await self.start_polling(scan_id)
        except Exception:  # noqa: BLE001
            logger.exception("Failed to start polling for new scan %s", scan_id)

    async def rerun(self, record: ScanRecord) -> ScanRecord:
        organization = record.organization if record.organization != PLACEHOLDER else None
        project = record.target_name if record.target_name != PLACEHOLDER else None
        return await self.submit_scan(
            ScanSubmission(
                scan_target=record.scan_target,
                project_name=project,
                organization=organization,
                schedule="now",
            )
        )

    # -- refresh -------------------------------------------------------------------

    async def refresh(self, org_id: str | None = None) -> tuple[ScanRecord, ...]:
        """
        Re-fetch the organization's scans and merge them with local stubs.

        On failure the error is kept in `last_error` and the current rows stay visible.
        """
        try:
            if org_id:
                fetched = await self.directory.list_by_organization_id(org_id, raise_errors=True)
            else:
                fetched = await self.directory.list_all(raise_errors=True)
        except ApiError as exc:
            logger.warning("Refreshing scans failed: %s", exc.message)
            self.last_error = exc
            return self.scans
        return self._merge_fetched(fetched)

    async def refresh_page(self, page: int = 1, limit: int = 10) -> tuple[ScanRecord, ...]:
        try:
            result = await self.directory.list_paged(page, limit, raise_errors=True)
        except ApiError as exc:
            logger.warning("Refreshing scan page %d failed: %s", page, exc.message)
            self.last_error = exc
            return self.scans
        if result.pagination is not None:
            self.pagination = result.pagination
        return self._merge_fetched(result.data)

    def _merge_fetched(self, fetched: Iterable[Any]) -> tuple[ScanRecord, ...]:
        records = [normalize_scan(raw, self.organization_name) for raw in fetched]
        self.scans = tuple(sort_newest_first(merge_scans(self.local_scans, records)))
        self.last_error = None
        return self.scans

    # -- teardown ------------------------------------------------------------------

    async def aclose(self) -> None:
        """Invoke every registered cleanup once and wait for the loops to unwind."""
        if self._closed:
            return
        self._closed = True

        for task in list(self._pending_starts):
            task.cancel()
        states = list(self._states.values())
        tasks = [state.task for state in states if state.task is not None]

        failed: list[str] = []
        for scan_id, registration in list(self._registry.items()):
            try:
                registration.cleanup()
            except Exception:  # noqa: BLE001
                logger.exception("Cleanup for scan %s failed", scan_id)
                failed.append(scan_id)
        # a failed cleanup must not leave its loop running
        for state in states:
            if state.scan_id in failed:
                state.stop()
        self._registry = {}
        self._states = {}
        self.active_polling_ids = frozenset()

        pending = [*tasks, *self._pending_starts]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    async def __aenter__(self) -> ScanLifecycleController:
        return self

    async def __aexit__(self, _exc_type, _exc, _tb) -> None:  # noqa: ANN001
        await self.aclose()


__all__ = [
    "PollingRegistration",
    "ScanLifecycleController",
    "StatusCallback",
    "merge_scans",
    "sort_newest_first",
]
