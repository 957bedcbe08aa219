from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from inferno.domain.addresses import compose_address, department_address, incident_address, normalize_query
from inferno.domain.categories import category_from_code, classify_incident, validate_category
from inferno.domain.filters import (
    NO_PINS_STATUS,
    HotspotFilters,
    cap_incidents,
    filter_incidents,
    status_message,
)
from inferno.domain.models import Department, Incident

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def incident(incident_id: int, days_ago=None, code=None, description=None, **kwargs) -> Incident:
    occurred = NOW - timedelta(days=days_ago) if days_ago is not None else None
    return Incident(
        id=incident_id,
        department_id=1,
        occurred_at=occurred,
        incident_type_code=code,
        incident_type_description=description,
        **kwargs,
    )


def test_compose_address_drops_empty_parts_and_commas():
    assert compose_address(["123 Main St", "Anytown", "ST"]) == "123 Main St, Anytown, ST"
    assert compose_address([" 123  Main St, ", None, "", "Anytown ,", "ST"]) == "123 Main St, Anytown, ST"
    assert compose_address([None, "  ", ","]) == ""


def test_incident_and_department_addresses():
    inc = incident(1, address="5 Oak Ave", city="Springfield", state=None)
    assert incident_address(inc) == "5 Oak Ave, Springfield"
    dept = Department(id=1, name="Station 1", city="Springfield", state="IL")
    assert department_address(dept) == "Springfield, IL"


def test_normalize_query_lowercases_and_collapses_spaces():
    assert normalize_query("  123 MAIN   St ") == "123 main st"


@pytest.mark.parametrize(
    "code,expected",
    [("111", "fire"), (321, "ems"), ("411", "hazmat"), ("553", "service"), ("745", "false_alarm"), ("900", "other"), (None, None), ("abc", None)],
)
def test_category_from_code(code, expected):
    assert category_from_code(code) == expected


def test_classify_falls_back_to_description_then_other():
    assert classify_incident(incident(1, description="Building fire")) == "fire"
    assert classify_incident(incident(2, description="Gas leak (natural gas)")) == "hazmat"
    assert classify_incident(incident(3, code="111", description="Medical assist")) == "fire"
    assert classify_incident(incident(4)) == "other"


def test_validate_category():
    assert validate_category(None) == "all"
    assert validate_category("EMS") == "ems"
    with pytest.raises(ValueError):
        validate_category("arson")


def test_filters_reject_unknown_window():
    with pytest.raises(ValueError):
        HotspotFilters(window="2d")


def test_filter_by_window_sorts_newest_first():
    items = [incident(1, days_ago=20), incident(2, days_ago=2), incident(3, days_ago=45), incident(4)]
    result = filter_incidents(items, HotspotFilters(window="30d"), now=NOW)
    assert [i.id for i in result] == [2, 1]


def test_window_all_keeps_undated_last():
    items = [incident(1), incident(2, days_ago=400), incident(3, days_ago=1)]
    result = filter_incidents(items, HotspotFilters(window="all"), now=NOW)
    assert [i.id for i in result] == [3, 2, 1]


def test_filter_by_category():
    items = [incident(1, days_ago=1, code="111"), incident(2, days_ago=1, code="321"), incident(3, days_ago=2, code="131")]
    result = filter_incidents(items, HotspotFilters(window="7d", category="fire"), now=NOW)
    assert [i.id for i in result] == [1, 3]


def test_naive_timestamps_treated_as_utc():
    naive = Incident(id=9, department_id=1, occurred_at=datetime(2026, 2, 28, 12, 0))
    assert filter_incidents([naive], HotspotFilters(window="7d"), now=NOW) == [naive]


def test_cap_incidents():
    items = [incident(i, days_ago=1) for i in range(50)]
    assert len(cap_incidents(items, 40)) == 40
    with pytest.raises(ValueError):
        cap_incidents(items, -1)


def test_status_message():
    assert status_message(0, HotspotFilters()) == NO_PINS_STATUS
    assert status_message(1, HotspotFilters(window="7d", category="ems")) == "Mapped 1 incident · last 7 days · category: EMS"
    assert status_message(3, HotspotFilters()) == "Mapped 3 incidents · last 30 days · category: All"
