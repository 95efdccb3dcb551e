# iqos_control/diagnosis.py
"""Diagnosis report and the accumulator that assembles it from response frames.

Retrieval issues several independent requests; their answers may come back
in any order and some hardware revisions leave fragments out. The builder
therefore merges whatever each frame carries (last write wins) and only
insists on completeness when asked to via :meth:`DiagnosisBuilder.build_complete`.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from typing import Iterable, Mapping, Optional, Union

from .exception import Incomplete
from .protocol import decode_diagnosis_fragment, to_hex

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class DiagnosisReport:
    total_usage_count: Optional[int] = None
    session: Optional[int] = None
    days_used: Optional[int] = None
    heating_count: Optional[int] = None
    composite_counter: Optional[int] = None
    battery_voltage: Optional[float] = None
    usage_period: Optional[int] = None
    total_heating_time: Optional[int] = None

    @property
    def is_complete(self) -> bool:
        """Both required counters are present."""
        return self.total_usage_count is not None and self.session is not None

    def __str__(self) -> str:
        lines = ["Diagnosis:"]
        if self.total_usage_count is not None:
            lines.append(f"  Total usage count: {self.total_usage_count}")
        if self.session is not None:
            lines.append(f"  Session count: {self.session}")
        if self.days_used is not None:
            lines.append(f"  Days used: {self.days_used}")
        if self.heating_count is not None:
            lines.append(f"  Heating count: {self.heating_count}")
        if self.composite_counter is not None:
            lines.append(f"  Composite counter: {self.composite_counter}")
        if self.battery_voltage is not None:
            lines.append(f"  Battery voltage: {self.battery_voltage:.2f}V")
        if self.usage_period is not None:
            lines.append(f"  Usage period: {self.usage_period}")
        if self.total_heating_time is not None:
            lines.append(f"  Total heating time: {self.total_heating_time}s")
        return "\n".join(lines)


def merge_report(
    report: DiagnosisReport, update: Mapping[str, Union[int, float]]
) -> DiagnosisReport:
    """Return *report* with every field in *update* overwritten."""
    if not update:
        return report
    return dataclasses.replace(report, **update)


class DiagnosisBuilder:
    """Accumulates diagnosis fields across response frames.

    Example::

        report = (
            DiagnosisBuilder()
            .parse(telemetry_response)
            .parse(battery_response)
            .build()
        )
    """

    def __init__(self, report: DiagnosisReport | None = None) -> None:
        self._report = report or DiagnosisReport()

    def parse(self, data: bytes | bytearray) -> "DiagnosisBuilder":
        """Merge the fields of one frame; unknown frames are a no-op."""
        update = decode_diagnosis_fragment(data)
        if not update:
            _LOGGER.debug("Skipping unrecognized diagnosis frame: %s", to_hex(data))
        self._report = merge_report(self._report, update)
        return self

    def parse_all(self, responses: Iterable[bytes | bytearray]) -> "DiagnosisBuilder":
        """Parse *responses* in order, stopping at the first malformed frame.

        Fields merged before the failing frame stay merged.
        """
        for data in responses:
            self.parse(data)
        return self

    def build(self) -> DiagnosisReport:
        return self._report

    def build_complete(self) -> DiagnosisReport:
        if not self._report.is_complete:
            missing = [
                name
                for name in ("total_usage_count", "session")
                if getattr(self._report, name) is None
            ]
            raise Incomplete(
                f"Diagnosis is incomplete: missing {', '.join(missing)}"
            )
        return self._report


def collect_diagnosis(responses: Iterable[bytes | bytearray]) -> DiagnosisReport:
    """Build a (possibly partial) report from a batch of responses."""
    return DiagnosisBuilder().parse_all(responses).build()


__all__ = ["DiagnosisReport", "DiagnosisBuilder", "merge_report", "collect_diagnosis"]
