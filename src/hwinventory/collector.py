"""
Fan-Out Collector

Dispatches one probe to many targets and merges the outcomes into a single
ordered RecordSet. Each target runs on its own worker with its own result;
a failing, hanging or cancelled target never affects the others. Results
are merged once, in input order, after every target has finished.

Workers are daemon threads: a probe stuck in a system call is abandoned
when its target times out and never holds up interpreter exit.
"""

import logging
import queue
import threading
import time
from collections import deque
from typing import Any, Callable, Deque, Dict, Iterable, List, Optional, Tuple, Union

from .channels import ExecutionChannel, select_channel
from .errors import ChannelError, InvalidTargetIdentifier
from .records import (
    TARGET_FIELD,
    CollectionResult,
    Failure,
    ProbeOutcome,
    RecordSet,
    Success,
    split_targets,
    validate_target,
)
from .utils import RuntimeSettings

logger = logging.getLogger("hwinventory.collector")

ChannelFactory = Callable[[str, RuntimeSettings], ExecutionChannel]

# How often the supervisor checks timeouts and cancellation
POLL_INTERVAL = 0.2


def stamp_records(target: str, records: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Put the queried target first in every record."""
    stamped = []
    for record in records:
        item = {TARGET_FIELD: target}
        item.update((k, v) for k, v in record.items() if k != TARGET_FIELD)
        stamped.append(item)
    return stamped


class FanOutCollector:
    """
    Runs a probe against an ordered set of targets.

    Args:
        settings: Injected host identity, worker count and per-target timeout
        channel_factory: Builds the execution channel for a target; defaults
            to local-vs-SSH selection
    """

    def __init__(
        self,
        settings: Optional[RuntimeSettings] = None,
        channel_factory: Optional[ChannelFactory] = None,
    ):
        self.settings = settings or RuntimeSettings.from_config()
        self.channel_factory = channel_factory or select_channel

    def collect(
        self,
        targets: Union[str, Iterable[str], None],
        probe: Any,
        raw: bool = False,
        cancel_event: Optional[threading.Event] = None,
    ) -> CollectionResult:
        """
        Collect records for every target.

        Args:
            targets: Ordered target identifiers (or a comma separated string);
                defaults to the local host when None
            probe: Callable ``probe(raw) -> list of dict`` with a ``kind``
                attribute for remote dispatch
            raw: Ask the probe for unprocessed facts
            cancel_event: Set it to abandon targets still in flight

        Returns:
            CollectionResult with the merged records and per-target failures

        Raises:
            ValueError: If no targets remain after normalisation
        """
        if targets is None:
            targets = [self.settings.local_host]
        target_list = split_targets(targets)
        if not target_list:
            raise ValueError("At least one target is required")

        outcomes: List[Optional[ProbeOutcome]] = [None] * len(target_list)
        runnable: List[int] = []

        for index, target in enumerate(target_list):
            try:
                target_list[index] = validate_target(target)
                runnable.append(index)
            except InvalidTargetIdentifier as e:
                outcomes[index] = self._fail(target, e)

        if runnable:
            self._run(target_list, runnable, outcomes, probe, raw, cancel_event)

        records: List[Dict[str, Any]] = []
        failures: List[Failure] = []
        for outcome in outcomes:
            if isinstance(outcome, Success):
                records.extend(outcome.records)
            elif isinstance(outcome, Failure):
                failures.append(outcome)

        kind = getattr(probe, "kind", "probe")
        logger.info(
            f"{kind}: {len(records)} records from {len(target_list) - len(failures)}"
            f"/{len(target_list)} targets"
        )
        return CollectionResult(records=RecordSet(records), failures=failures, targets=target_list)

    def _run(
        self,
        targets: List[str],
        runnable: List[int],
        outcomes: List[Optional[ProbeOutcome]],
        probe: Any,
        raw: bool,
        cancel_event: Optional[threading.Event],
    ) -> None:
        """
        Run runnable targets on daemon workers, writing each outcome to its own slot.

        The supervisor starts at most ``max_workers`` targets at a time and
        is the only writer of ``outcomes``. A result arriving from a worker
        that was already timed out or cancelled is discarded.
        """
        channels: Dict[int, ExecutionChannel] = {}
        channels_lock = threading.Lock()
        results: "queue.Queue[Tuple[int, ProbeOutcome]]" = queue.Queue()
        waiting: Deque[int] = deque(runnable)
        running: Dict[int, float] = {}

        def work(index: int) -> None:
            target = targets[index]
            try:
                channel = self.channel_factory(target, self.settings)
                with channels_lock:
                    channels[index] = channel
                with channel:
                    records = channel.invoke(probe, raw)
                outcome: ProbeOutcome = Success(target, stamp_records(target, records))
            except Exception as e:
                outcome = Failure(target, e)
            results.put((index, outcome))

        slots = max(1, self.settings.max_workers)

        def launch() -> None:
            while waiting and len(running) < slots:
                index = waiting.popleft()
                running[index] = time.monotonic()
                threading.Thread(
                    target=work,
                    args=(index,),
                    name=f"hwinventory-{targets[index]}",
                    daemon=True,
                ).start()

        def abandon(index: int, reason: str) -> None:
            outcomes[index] = self._fail(targets[index], ChannelError(targets[index], reason))
            self._close_channel(channels, channels_lock, index)

        launch()
        while running:
            try:
                index, outcome = results.get(timeout=POLL_INTERVAL)
            except queue.Empty:
                pass
            else:
                if running.pop(index, None) is not None:
                    if isinstance(outcome, Failure):
                        self._fail(outcome.target, outcome.cause)
                    outcomes[index] = outcome

            if cancel_event is not None and cancel_event.is_set():
                for index in list(running) + list(waiting):
                    abandon(index, "cancelled")
                running.clear()
                waiting.clear()
                break

            if self.settings.timeout:
                now = time.monotonic()
                for index, begun in list(running.items()):
                    if now - begun > self.settings.timeout:
                        del running[index]
                        abandon(index, f"timed out after {self.settings.timeout:g}s")

            launch()

    @staticmethod
    def _close_channel(channels: Dict[int, ExecutionChannel], lock: threading.Lock, index: int) -> None:
        with lock:
            channel = channels.get(index)
        if channel is not None:
            try:
                channel.close()
            except Exception as e:
                logger.debug(f"error closing {channel}: {e}")

    @staticmethod
    def _fail(target: Any, cause: BaseException) -> Failure:
        logger.warning(f"{target}: {cause}")
        return Failure(target, cause)


def collect(
    targets: Union[str, Iterable[str], None],
    probe: Any,
    raw: bool = False,
    settings: Optional[RuntimeSettings] = None,
) -> CollectionResult:
    """Convenience wrapper around ``FanOutCollector(settings).collect``."""
    return FanOutCollector(settings).collect(targets, probe, raw=raw)
