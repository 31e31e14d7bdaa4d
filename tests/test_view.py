import math

import pytest

from tpi_dashboard.view import RING_CIRCUMFERENCE, build_dashboard_view, format_score, format_update_time


def test_dashboard_view_from_payload():
    payload = {
        "tpi": 87.456,
        "updateTime": "2024-01-02T03:04:00Z",
        "departments": [{"name": "Eng", "score": 80}],
    }

    view = build_dashboard_view(payload, "UTC")

    assert view.score_text == "87.5"
    assert view.update_time_text == "2024/01/02 03:04"
    assert len(view.rings) == 1
    ring = view.rings[0]
    assert ring.name == "Eng"
    assert ring.circumference == pytest.approx(2 * math.pi * 45)
    assert ring.dash_length == pytest.approx(0.8 * RING_CIRCUMFERENCE)
    assert ring.dasharray == f"{ring.dash_length}, {ring.circumference}"


def test_missing_departments_means_no_ring_update():
    view = build_dashboard_view({"tpi": 50, "updateTime": "2024-01-02T03:04:00Z"}, "UTC")

    assert view.rings is None
    assert view.as_dict()["rings"] is None


def test_empty_departments_clears_rings():
    view = build_dashboard_view({"tpi": 50, "updateTime": "2024-01-02T03:04:00Z", "departments": []}, "UTC")
    assert view.rings == ()


@pytest.mark.parametrize("score, expected", [(87.456, "87.5"), (90, "90.0"), (0.04, "0.0")])
def test_format_score(score, expected):
    assert format_score(score) == expected


def test_unknown_timezone_falls_back_to_utc():
    assert format_update_time("2024-01-02T03:04:59Z", "Not/AZone") == "2024/01/02 03:04"


def test_naive_timestamp_is_treated_as_utc():
    assert format_update_time("2024-01-02T03:04:00", "UTC") == "2024/01/02 03:04"


def test_malformed_payload_raises():
    with pytest.raises(KeyError):
        build_dashboard_view({"updateTime": "2024-01-02T03:04:00Z"}, "UTC")
    with pytest.raises(ValueError):
        build_dashboard_view({"tpi": 1, "updateTime": "not a date"}, "UTC")


@pytest.mark.parametrize("update_time", [None, 1704164640, ["2024-01-02"]])
def test_non_string_update_time_raises_type_error(update_time):
    with pytest.raises(TypeError):
        build_dashboard_view({"tpi": 1, "updateTime": update_time}, "UTC")
