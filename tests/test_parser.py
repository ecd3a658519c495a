import pytest

from iris_mobility.analysis.parser import (
    FRAME_COLUMNS,
    parse_hour,
    parse_row,
    parse_rows,
    records_to_frame,
)

from conftest import HEADER


def test_header_is_skipped_and_fields_normalized():
    text = HEADER + "\n01-09-2017 08:15, Truck ,north,SOUTH,12.5,72.4\n"
    (rec,) = parse_rows(text, day_index=3)
    assert rec.hour == 8
    assert rec.vehicle_class == "truck"
    assert rec.entry_direction == "NORTH"
    assert rec.speed_kmh == pytest.approx(72.4)
    assert rec.day_index == 3
    assert rec.timestamp_raw == "01-09-2017 08:15"


def test_unknown_class_becomes_car():
    rec = parse_row(["01-09-2017 10:00", "motorbike", "EAST", "WEST", "1", "30"], 0)
    assert rec.vehicle_class == "car"


def test_short_and_non_numeric_rows_are_dropped():
    text = "\r\n".join([
        HEADER,
        "01-09-2017 08:15,car,NORTH,SOUTH,12.5",
        "01-09-2017 08:15,car,NORTH,SOUTH,12.5,fast",
        "01-09-2017 08:15,car,NORTH,SOUTH,12.5,nan",
        "",
        "01-09-2017 09:00,bus,WEST,EAST,3,41",
    ])
    records = parse_rows(text, 0)
    assert len(records) == 1
    assert records[0].vehicle_class == "bus"


def test_header_only_file_has_no_records():
    assert parse_rows(HEADER + "\n", 0) == []
    assert parse_rows("", 0) == []


@pytest.mark.parametrize(
    "timestamp, hour",
    [
        ("01-09-2017 08:15", 8),
        ("01-09-2017 23:59", 23),
        ("01-09-2017 7", 7),
        ("01-09-2017 31:00", 23),
        ("01-09-2017 xx:00", 0),
        ("01-09-2017", 0),
        ("", 0),
    ],
)
def test_parse_hour(timestamp, hour):
    assert parse_hour(timestamp) == hour


def test_records_to_frame_keeps_schema_when_empty():
    df = records_to_frame([])
    assert list(df.columns) == FRAME_COLUMNS
    assert df.empty


@pytest.mark.parametrize(
    "raw, speed",
    [
        ("72km", 72.0),
        ("1_000", 1.0),
        (" 64.5 ", 64.5),
        (".5", 0.5),
        ("-3", -3.0),
        ("8e1kmh", 80.0),
    ],
)
def test_speed_uses_leading_number(raw, speed):
    rec = parse_row(["01-09-2017 08:00", "car", "NORTH", "SOUTH", "1", raw], 0)
    assert rec.speed_kmh == pytest.approx(speed)


@pytest.mark.parametrize("raw", ["km72", "", "inf", "1e999", "nan"])
def test_speed_without_finite_leading_number_drops_row(raw):
    assert parse_row(["01-09-2017 08:00", "car", "NORTH", "SOUTH", "1", raw], 0) is None
