"""Aggregation of measured data over time periods."""

import logging
from typing import Any, Dict, List, Optional, Protocol

from pydantic import Field

from tablesync.config import ProjectSettings
from tablesync.errors import Internal, InvalidInput, NotFound
from tablesync.models import TableSyncBaseModel

logger = logging.getLogger(__name__)


class TimePeriod(TableSyncBaseModel):
    """A selectable graph period."""

    name: str
    resolution: int = Field(gt=0, description="Seconds per data point")
    time_value: str = Field(description="Window length, e.g. '1h'")

    @property
    def start(self) -> str:
        return f"end-{self.time_value}"


TIME_PERIODS: List[TimePeriod] = [
    TimePeriod(name="lastHour", resolution=60, time_value="1h"),
    TimePeriod(name="lastDay", resolution=600, time_value="1d"),
    TimePeriod(name="lastWeek", resolution=3600, time_value="1w"),
    TimePeriod(name="lastMonth", resolution=86400, time_value="1month"),
    TimePeriod(name="lastYear", resolution=604800, time_value="1y"),
]


class Measure(Protocol):
    """A source of measured data.

    ``fetch_data`` raises ``FileNotFoundError`` while its backing data has
    not been written yet.
    """

    name: str
    instances: List[str]
    type_instances: List[str]
    graph_per_type_instance: bool

    def fetch_data(
        self,
        resolution: int,
        start: str,
        instance: Optional[str] = None,
        type_instance: Optional[str] = None,
    ) -> Dict[str, Any]: ...


def time_period(name: str) -> TimePeriod:
    """Return the period with this name.

    Raises:
        InvalidInput: If the period is not one of TIME_PERIODS
    """
    for period in TIME_PERIODS:
        if period.name == name:
            return period
    raise InvalidInput(
        f"Invalid period '{name}'. It must be one of the following: "
        + ", ".join(p.name for p in TIME_PERIODS),
        data="period",
    )


class MeasureAggregator:
    """Collects graph data from a set of registered measures."""

    def __init__(self, measures: Optional[List[Measure]] = None, settings: Optional[ProjectSettings] = None):
        self.measures: List[Measure] = list(measures or [])
        self.settings = settings or ProjectSettings()

    def register(self, measure: Measure) -> None:
        self.measures.append(measure)

    def measure(self, name: str) -> Measure:
        for measure in self.measures:
            if measure.name == name:
                return measure
        raise NotFound(f"Measure '{name}' not found", data=name)

    def measured_data(
        self,
        measure_name: str,
        period: str,
        instance: Optional[str] = None,
        type_instance: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Data of one measure for a period.

        Raises:
            InvalidInput: If the measure name is empty or the period unknown
            NotFound: If no measure has this name
        """
        if not measure_name:
            raise InvalidInput("Parameter 'measureName' is required", data="measureName")
        period_data = time_period(period)
        measure = self.measure(measure_name)
        return measure.fetch_data(
            resolution=period_data.resolution,
            start=period_data.start,
            instance=instance,
            type_instance=type_instance,
        )

    def all_measured_data(self, period: str = "lastHour") -> List[Dict[str, Any]]:
        """Data of every measure for a period.

        Measures whose data does not exist yet are skipped.

        Raises:
            InvalidInput: If the period is unknown
            Internal: If no measure is ready and the policy is ``raise``
        """
        period_data = time_period(period)
        data: List[Dict[str, Any]] = []
        ready = False

        for measure in self.measures:
            try:
                data.extend(self._fetch_all(measure, period_data))
                ready = True
            except FileNotFoundError as e:
                logger.debug(f"Skipping measure '{measure.name}': {e}")

        if not ready:
            if self.settings.no_measures_policy == "empty":
                return []
            raise Internal("Need to save changes to see measures")
        return data

    def _fetch_all(self, measure: Measure, period: TimePeriod) -> List[Dict[str, Any]]:
        instances: List[Optional[str]] = list(measure.instances) or [None]
        type_instances: List[Optional[str]] = (
            list(measure.type_instances) if measure.graph_per_type_instance else [None]
        )
        return [
            measure.fetch_data(
                resolution=period.resolution,
                start=period.start,
                instance=instance,
                type_instance=type_instance,
            )
            for instance in instances
            for type_instance in type_instances
        ]
