import asyncio
from pathlib import Path

import pytest

from iris_mobility.data.loader import DatasetLoader, load_and_aggregate
from iris_mobility.errors import EmptyRange, SourceUnavailable

from conftest import csv_text, make_days


def write_days(tmp_path: Path, days, rows_per_day):
    for day, rows in zip(days, rows_per_day):
        (tmp_path / day.file_id).write_text(csv_text(rows), encoding="utf-8")


def test_loads_files_in_day_order(tmp_path: Path):
    days = make_days(2)
    write_days(tmp_path, days, [
        [("08:00", "car", "NORTH", 50)],
        [("09:00", "bus", "EAST", 90), ("10:00", "truck", "WEST", 40)],
    ])
    ds = load_and_aggregate(days, 80, data_dir=tmp_path, range_label="custom")

    assert ds.total_vehicles == 3
    assert [d.count for d in ds.per_day] == [1, 2]
    assert [s.count for s in ds.speeding_by_day] == [0, 1]
    assert ds.high_speed_events[0].ts == "2017-09-02 09:00"


def test_missing_file_aborts_whole_request(tmp_path: Path):
    days = make_days(3)
    write_days(tmp_path, days[:2], [[("08:00", "car", "NORTH", 50)]] * 2)

    with pytest.raises(SourceUnavailable):
        DatasetLoader(tmp_path).load(days)


def test_fetch_errors_become_source_unavailable():
    def broken(day):
        raise ConnectionError("feed offline")

    with pytest.raises(SourceUnavailable, match="feed offline"):
        DatasetLoader(".", fetch=broken).load(make_days(1))


def test_empty_day_list_raises():
    with pytest.raises(EmptyRange):
        DatasetLoader(".").load([])


def test_async_load_matches_sync(tmp_path: Path):
    days = make_days(4)
    write_days(tmp_path, days, [
        [("0%d:30" % i, "car", "SOUTH", 60 + i * 10), ("12:00", "truck", "NORTH", 85)]
        for i in range(4)
    ])
    loader = DatasetLoader(tmp_path)

    sync_ds = loader.load(days, 80, range_label="custom")
    async_ds = asyncio.run(loader.load_async(days, 80, range_label="custom"))

    assert async_ds == sync_ds


def test_custom_fetch_is_used():
    texts = {"2017-09-01.csv": csv_text([("08:00", "bus", "WEST", 30)])}
    ds = DatasetLoader("unused", fetch=lambda d: texts[d.file_id]).load(make_days(1))
    assert ds.class_share("Bus").value == 1


def test_invalid_bytes_only_affect_their_row(tmp_path: Path):
    day = make_days(1)[0]
    (tmp_path / day.file_id).write_bytes(
        b"timestamp,vehicleClass,entryDirection,exitDirection,distanceMeters,speedKmh\n"
        b"01-09-2017 08:00,truck,NORTH,SOUTH,12.5,50\n"
        b"01-09-2017 09:00,car\xff,EAST,WEST,12.5,60\n"
        b"01-09-2017 10:00,bus,WEST,EAST,12.5,\xff90\n"
    )
    ds = DatasetLoader(tmp_path).load([day])

    assert ds.total_vehicles == 2
    assert ds.class_share("Truck").value == 1
    assert ds.class_share("Car").value == 1
    assert ds.class_share("Bus") is None
