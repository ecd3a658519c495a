import asyncio
from pathlib import Path

import pytest

from iris_mobility.data.loader import DatasetLoader
from iris_mobility.data.session import TrafficSession
from iris_mobility.errors import RangeNotFound, ReportNotReady, StaleRequest

from conftest import csv_text, make_days

CATALOG = tuple(make_days(10))


class GatedLoader(DatasetLoader):
    """Loader whose fetch for a given date blocks until released."""

    def __init__(self, gates):
        super().__init__(".", fetch=lambda d: csv_text([("08:00", "car", "NORTH", 50)]))
        self.gates = gates

    async def load_async(self, days, speed_limit_kmh=80, range_label=None):
        gate = self.gates.get(days[0].date)
        if gate is not None:
            await gate.wait()
        return await super().load_async(days, speed_limit_kmh, range_label)


class FakeGenerator:
    def __init__(self):
        self.calls = []
        self.release = asyncio.Event()

    async def generate_async(self, dataset, **kwargs):
        self.calls.append((dataset, kwargs))
        await self.release.wait()
        return Path("report.pdf")


def test_request_publishes_dataset():
    session = TrafficSession(GatedLoader({}), catalog=CATALOG)
    ds = asyncio.run(session.request("2017-09-03"))
    assert session.current is ds
    assert ds.range_label == "2017-09-03"
    assert ds.all_dates == ("2017-09-03",)


def test_last_request_wins():
    async def scenario():
        slow = asyncio.Event()
        session = TrafficSession(GatedLoader({"2017-09-01": slow}), catalog=CATALOG)

        first = asyncio.create_task(session.request("2017-09-01"))
        await asyncio.sleep(0)
        second = await session.request("2017-09-05")
        slow.set()
        with pytest.raises(StaleRequest):
            await first
        return session, second

    session, second = asyncio.run(scenario())
    assert session.current is second
    assert session.current.all_dates == ("2017-09-05",)


def test_failed_request_keeps_previous_dataset():
    async def scenario():
        session = TrafficSession(GatedLoader({}), catalog=CATALOG)
        ds = await session.request("weekly")
        with pytest.raises(RangeNotFound):
            await session.request("2019-01-01")
        return session, ds

    session, ds = asyncio.run(scenario())
    assert session.current is ds
    assert ds.num_days == 7


def test_report_requires_a_dataset():
    session = TrafficSession(GatedLoader({}), catalog=CATALOG)
    with pytest.raises(ReportNotReady):
        asyncio.run(session.generate_report(FakeGenerator()))


def test_overlapping_reports_are_rejected():
    async def scenario():
        session = TrafficSession(GatedLoader({}), catalog=CATALOG)
        await session.request("daily")
        gen = FakeGenerator()

        running = asyncio.create_task(session.generate_report(gen, report_type="daily"))
        await asyncio.sleep(0)
        assert session.is_generating
        with pytest.raises(ReportNotReady):
            await session.generate_report(gen)

        gen.release.set()
        path = await running
        return session, gen, path

    session, gen, path = asyncio.run(scenario())
    assert path == Path("report.pdf")
    assert not session.is_generating
    assert len(gen.calls) == 1
    assert gen.calls[0][1] == {"report_type": "daily"}
