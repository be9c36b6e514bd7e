from __future__ import annotations

import pytest

from perizinan.core.enums import RequestStatus
from perizinan.core.exceptions import ValidationError
from perizinan.requests.model import PermissionRequest
from perizinan.requests.query import RequestFilter, apply_filter, paginate, sort_requests


def _req(rid, name, kelas, asrama, keluar, status=RequestStatus.PENDING):
    return PermissionRequest(rid, name, kelas, asrama, "Sakit", keluar, keluar, status)


@pytest.fixture
def requests():
    return [
        _req("1", "Ana", "X-1", "Melati", "2024-03-01T08:00", RequestStatus.APPROVED),
        _req("2", "Budi", "X-2", "Kenanga", "2024-03-05T09:00"),
        _req("3", "Citra", "XI-1", "Melati", "2024-04-10T07:30", RequestStatus.REJECTED),
        _req("4", "Dewi", "XII-3", "Mawar", "2024-05-01T10:00"),
    ]


def test_search_matches_name_class_or_dormitory_case_insensitively(requests):
    assert [r.request_id for r in apply_filter(requests, RequestFilter(search="melati"))] == ["1", "3"]
    assert [r.request_id for r in apply_filter(requests, RequestFilter(search="xi"))] == ["3", "4"]


def test_status_filter_is_exact_match_or_all(requests):
    assert [r.request_id for r in apply_filter(requests, RequestFilter(status="pending"))] == ["2", "4"]
    assert len(apply_filter(requests, RequestFilter(status="all"))) == 4


def test_date_range_compares_depart_time_lexically(requests):
    f = RequestFilter(start="2024-03-02", end="2024-04-30")
    assert [r.request_id for r in apply_filter(requests, f)] == ["2", "3"]


def test_filters_keep_relative_order_and_are_subsets(requests):
    f = RequestFilter(search="a", status="pending", start="2024-01-01")
    result = apply_filter(requests, f)

    assert all(r in requests for r in result)
    assert [requests.index(r) for r in result] == sorted(requests.index(r) for r in result)


def test_from_args_rejects_unknown_status():
    with pytest.raises(ValidationError):
        RequestFilter.from_args({"status": "archived"})


def test_sort_descending_reverses_ascending_for_distinct_values(requests):
    asc = sort_requests(requests, "namasiswa", "asc")
    desc = sort_requests(requests, "subject_name", "desc")

    assert desc == list(reversed(asc))


def test_sort_is_stable_for_ties(requests):
    by_status = sort_requests(requests, "status", "asc")

    assert [r.request_id for r in by_status] == ["1", "2", "4", "3"]
    assert [r.request_id for r in sort_requests(requests, "status", "desc")] == ["3", "2", "4", "1"]


def test_sort_rejects_unknown_field(requests):
    with pytest.raises(ValidationError):
        sort_requests(requests, "favourite_colour")


def test_paginate_ten_per_page():
    items = list(range(23))

    page = paginate(items, 3)

    assert page.items == [20, 21, 22]
    assert page.total_pages == 3
    assert page.total_items == 23
    assert paginate([], 1).total_pages == 0
