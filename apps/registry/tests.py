"""
Tests for the shift registry application.

This module tests:
- Status, shift type and interactivity classification
- Record normalization and placeholder handling
- Calendar bucketing and day counters
- The registry HTTP client
- The per-scope state machine and the fetch controller

Uses Django SimpleTestCase (no database); controller tests are async.
"""

import asyncio
import sys
from dataclasses import FrozenInstanceError
from datetime import date, datetime
from unittest import skipIf
from unittest.mock import Mock, patch
from zoneinfo import ZoneInfo

import pytest
import requests
from django.test import SimpleTestCase, override_settings
from django.utils import timezone

from .buckets import (
    calendar_buckets,
    group_by_date,
    iso_date,
    month_dates,
    shifts_on,
    week_dates,
)
from .classifiers import (
    ShiftStatus,
    ShiftType,
    classify_shift_type,
    classify_status,
    is_interactive,
)
from .client import (
    COUNTERS_FALLBACK_MESSAGE,
    UNAUTHENTICATED_MESSAGE,
    Credential,
    RegistryClient,
    RegistryError,
    RegistryPage,
    RegistryUnauthenticated,
)
from .counters import DayCounters, derive_counters
from .filters import AgencyScope, ScheduleFilters, ViewScope
from .normalizer import normalize, normalize_all
from .orchestrator import RegistryController
from .state import (
    EMPTY_SNAPSHOT,
    Failed,
    Requested,
    ScopeSnapshot,
    ScopeState,
    ScopeStatus,
    Succeeded,
    transition,
)
from .timestamps import date_prefix, parse_timestamp


# =============================================================================
# FACTORY FUNCTIONS
# =============================================================================


def make_record(record_id="1", start_at="2024-03-04T08:00:00", end_at="2024-03-04T20:00:00", **kwargs):
    """Create a raw registry item."""
    record = {"id": record_id, "startAt": start_at, "endAt": end_at}
    record.update(kwargs)
    return {key: value for key, value in record.items() if value is not None}


def make_filters(day=date(2024, 3, 6), **kwargs):
    return ScheduleFilters(date=day, **kwargs)


def make_response(payload=None, status_code=200, json_error=False):
    """Create a stand-in for a requests.Response."""
    response = Mock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    if json_error:
        response.json.side_effect = ValueError("No JSON object could be decoded")
    else:
        response.json.return_value = payload
    return response


def make_client(*responses, credential=None, **kwargs):
    """Create a RegistryClient whose session returns the given responses in order."""
    session = Mock()
    session.get.side_effect = list(responses)
    if credential is None:
        credential = Credential(access_token="secret-token")
    return RegistryClient(credential, base_url="http://registry.test/", session=session, **kwargs)


class FakeRegistrySource:
    """
    In-memory registry source for controller tests.

    Pages and counters are keyed by (scope, branch id). A gate (asyncio.Event)
    holds a response back until the test releases it.
    """

    def __init__(self):
        self.pages = {}
        self.counter_payloads = {}
        self.gates = {}
        self.calls = []

    def add_page(self, view, records, *, branch_id=None, total=None, gate=None):
        key = (ViewScope(view), branch_id)
        if isinstance(records, Exception):
            self.pages[key] = records
        else:
            self.pages[key] = RegistryPage(
                items=list(records),
                total=len(records) if total is None else total,
            )
        if gate is not None:
            self.gates[key] = gate

    def add_counters(self, payload, *, branch_id=None):
        self.counter_payloads[branch_id] = payload

    async def shifts(self, view, filters):
        key = (ViewScope(view), filters.branch_id)
        self.calls.append(("shifts", key[0], filters.branch_id))
        gate = self.gates.get(key)
        if gate is not None:
            await gate.wait()
        result = self.pages[key]
        if isinstance(result, Exception):
            raise result
        return result

    async def counters(self, filters):
        self.calls.append(("counters", ViewScope.DAY, filters.branch_id))
        result = self.counter_payloads.get(filters.branch_id)
        if isinstance(result, Exception):
            raise result
        return result


# =============================================================================
# CLASSIFIER TESTS
# =============================================================================


class ClassifyStatusTests(SimpleTestCase):
    """Tests for classify_status."""

    def test_completed_tokens(self):
        self.assertEqual(classify_status("COMPLETED"), ShiftStatus.COMPLETED)
        self.assertEqual(classify_status("finished"), ShiftStatus.COMPLETED)

    def test_missed_tokens_are_case_insensitive(self):
        for raw in ["cancelled", "CANCELED", "Missed", "  missed  "]:
            with self.subTest(raw=raw):
                self.assertEqual(classify_status(raw), ShiftStatus.MISSED)

    def test_absent_status_is_scheduled(self):
        self.assertEqual(classify_status(None), ShiftStatus.SCHEDULED)
        self.assertEqual(classify_status(), ShiftStatus.SCHEDULED)

    def test_unknown_status_is_scheduled(self):
        self.assertEqual(classify_status("FOO"), ShiftStatus.SCHEDULED)
        self.assertEqual(classify_status("ACTIVE"), ShiftStatus.SCHEDULED)

    def test_non_string_status_is_scheduled(self):
        self.assertEqual(classify_status(42), ShiftStatus.SCHEDULED)


class ClassifyShiftTypeTests(SimpleTestCase):
    """Tests for classify_shift_type."""

    def test_explicit_night_kind_wins_over_hour(self):
        for start_at in ["2024-01-01T10:00:00", "2024-01-01T20:00:00", None]:
            with self.subTest(start_at=start_at):
                self.assertEqual(classify_shift_type("NIGHT", start_at), ShiftType.NIGHT)

    def test_explicit_day_kind_wins_over_hour(self):
        self.assertEqual(classify_shift_type("day", "2024-01-01T23:00:00"), ShiftType.DAY)

    def test_evening_start_is_night(self):
        self.assertEqual(classify_shift_type(None, "2024-01-01T20:00:00"), ShiftType.NIGHT)

    def test_morning_start_is_day(self):
        self.assertEqual(classify_shift_type(None, "2024-01-01T10:00:00"), ShiftType.DAY)

    def test_night_window_boundaries(self):
        cases = [
            ("2024-01-01T17:59:00", ShiftType.DAY),
            ("2024-01-01T18:00:00", ShiftType.NIGHT),
            ("2024-01-01T05:59:00", ShiftType.NIGHT),
            ("2024-01-01T06:00:00", ShiftType.DAY),
        ]
        for start_at, expected in cases:
            with self.subTest(start_at=start_at):
                self.assertEqual(classify_shift_type(None, start_at), expected)

    def test_no_signal_defaults_to_day(self):
        self.assertEqual(classify_shift_type(None, None), ShiftType.DAY)
        self.assertEqual(classify_shift_type("EVENING", "not a date"), ShiftType.DAY)

    def test_unknown_kind_falls_back_to_hour(self):
        self.assertEqual(classify_shift_type("ROTATING", "2024-01-01T22:00:00"), ShiftType.NIGHT)

    def test_aware_start_uses_local_hour(self):
        with timezone.override(ZoneInfo("Asia/Tokyo")):
            # 03:00 UTC is noon in Tokyo
            self.assertEqual(classify_shift_type(None, "2024-01-01T03:00:00+00:00"), ShiftType.DAY)
        with timezone.override(ZoneInfo("UTC")):
            self.assertEqual(classify_shift_type(None, "2024-01-01T03:00:00+00:00"), ShiftType.NIGHT)

    def test_accepts_datetime_start(self):
        self.assertEqual(classify_shift_type(None, datetime(2024, 1, 1, 19, 30)), ShiftType.NIGHT)


class IsInteractiveTests(SimpleTestCase):
    """Tests for is_interactive."""

    def test_inactive_raw_status_is_not_interactive(self):
        for raw in ["SCHEDULED", "planned", "Pending", "ASSIGNED", "created"]:
            with self.subTest(raw=raw):
                self.assertFalse(is_interactive(raw, ShiftStatus.COMPLETED))

    def test_other_raw_status_is_interactive(self):
        self.assertTrue(is_interactive("COMPLETED", ShiftStatus.SCHEDULED))
        self.assertTrue(is_interactive("ACTIVE", None))

    def test_raw_status_takes_precedence_over_classification(self):
        # ACTIVE classifies as scheduled but has a live session
        self.assertEqual(classify_status("ACTIVE"), ShiftStatus.SCHEDULED)
        self.assertTrue(is_interactive("ACTIVE", classify_status("ACTIVE")))

    def test_falls_back_to_classification_without_raw_status(self):
        self.assertFalse(is_interactive(None, "scheduled"))
        self.assertTrue(is_interactive(None, "completed"))
        self.assertTrue(is_interactive(None, ShiftStatus.MISSED))

    def test_blank_raw_status_counts_as_absent(self):
        self.assertFalse(is_interactive("   ", ShiftStatus.SCHEDULED))


# =============================================================================
# TIMESTAMP TESTS
# =============================================================================


class TimestampTests(SimpleTestCase):
    """Tests for lenient timestamp parsing."""

    def test_parses_naive_iso_timestamp(self):
        self.assertEqual(parse_timestamp("2024-03-04T19:00:00"), datetime(2024, 3, 4, 19, 0))

    def test_invalid_values_are_none(self):
        for value in [None, "", "   ", "garbage", "2024-13-45T10:00:00", 1709578800, ["2024-03-04"]]:
            with self.subTest(value=value):
                self.assertIsNone(parse_timestamp(value))

    def test_date_prefix(self):
        self.assertEqual(date_prefix("2024-03-04T19:00:00"), "2024-03-04")
        self.assertEqual(date_prefix("2024-03-04 19:00:00"), "2024-03-04")
        self.assertEqual(date_prefix("garbage"), "")
        self.assertEqual(date_prefix(None), "")

    def test_date_prefix_ignores_time_zone_shift(self):
        self.assertEqual(date_prefix("2024-03-04T23:30:00+00:00"), "2024-03-04")

    # datetime.fromisoformat reads the compact form from Python 3.11 on
    @skipIf(sys.version_info < (3, 11), "compact ISO timestamps need Python 3.11")
    def test_date_prefix_compact_timestamp(self):
        self.assertEqual(date_prefix("20240305T080000"), "2024-03-05")


# =============================================================================
# NORMALIZER TESTS
# =============================================================================


class NormalizeTests(SimpleTestCase):
    """Tests for normalize."""

    def test_full_record(self):
        shift = normalize(make_record(
            record_id="shift-1",
            guardId="g-1",
            guardName="Sergeev I.P.",
            branchName="Almaty Central Office",
            checkpointName="Checkpoint 1",
            agencyName="Shield Agency",
            status="COMPLETED",
            kind="DAY",
        ))

        self.assertEqual(shift.id, "shift-1")
        self.assertEqual(shift.guard_id, "g-1")
        self.assertEqual(shift.guard_name, "Sergeev I.P.")
        self.assertEqual(shift.branch_name, "Almaty Central Office")
        self.assertEqual(shift.checkpoint_name, "Checkpoint 1")
        self.assertEqual(shift.agency_name, "Shield Agency")
        self.assertEqual(shift.date_label, "04.03.2024")
        self.assertEqual(shift.time_range_label, "08:00–20:00")
        self.assertEqual(shift.shift_type, ShiftType.DAY)
        self.assertEqual(shift.status, ShiftStatus.COMPLETED)
        self.assertEqual(shift.raw_status, "COMPLETED")
        self.assertEqual(shift.date_key, "2024-03-04")
        self.assertTrue(shift.interactive)

    def test_record_missing_every_field_gets_placeholders(self):
        shift = normalize({})

        self.assertEqual(shift.guard_name, "—")
        self.assertEqual(shift.branch_name, "—")
        self.assertEqual(shift.checkpoint_name, "—")
        self.assertEqual(shift.agency_name, "—")
        self.assertEqual(shift.date_label, "—")
        self.assertEqual(shift.time_range_label, "—")
        self.assertEqual(shift.date_key, "")
        self.assertEqual(shift.guard_id, "")
        self.assertIsNone(shift.raw_status)
        self.assertEqual(shift.shift_type, ShiftType.DAY)
        self.assertEqual(shift.status, ShiftStatus.SCHEDULED)
        self.assertFalse(shift.interactive)
        self.assertTrue(shift.id)

    def test_non_mapping_record_does_not_raise(self):
        for record in [None, "shift", 12, ["id"]]:
            with self.subTest(record=record):
                self.assertEqual(normalize(record).date_label, "—")

    def test_null_and_wrongly_typed_fields_degrade(self):
        shift = normalize({
            "id": None,
            "guardName": 17.5,
            "branchName": None,
            "branchId": True,
            "startAt": 1709578800,
            "endAt": {"value": "x"},
            "status": ["COMPLETED"],
            "kind": 3,
        })

        self.assertEqual(shift.guard_name, "17.5")
        self.assertEqual(shift.branch_name, "—")
        self.assertEqual(shift.date_label, "—")
        self.assertEqual(shift.status, ShiftStatus.SCHEDULED)
        self.assertIsNone(shift.raw_status)

    def test_label_falls_back_to_identifier(self):
        shift = normalize(make_record(branchId=7, checkpointId="cp-2", agencyId="a-9"))

        self.assertEqual(shift.branch_name, "7")
        self.assertEqual(shift.checkpoint_name, "cp-2")
        self.assertEqual(shift.agency_name, "a-9")

    def test_blank_name_falls_back_to_identifier(self):
        shift = normalize(make_record(branchName="   ", branchId="b-9"))

        self.assertEqual(shift.branch_name, "b-9")

    def test_guard_name_does_not_fall_back_to_guard_id(self):
        shift = normalize(make_record(guardId="g-5"))

        self.assertEqual(shift.guard_id, "g-5")
        self.assertEqual(shift.guard_name, "—")

    def test_unparsable_start_degrades_to_placeholders(self):
        shift = normalize(make_record(start_at="not-a-date"))

        self.assertEqual(shift.date_label, "—")
        self.assertEqual(shift.time_range_label, "—")
        self.assertEqual(shift.date_key, "")

    def test_missing_end_only_affects_time_range(self):
        shift = normalize(make_record(end_at=None))

        self.assertEqual(shift.date_label, "04.03.2024")
        self.assertEqual(shift.time_range_label, "—")
        self.assertEqual(shift.date_key, "2024-03-04")

    def test_scheduled_evening_shift_scenario(self):
        shift = normalize({
            "startAt": "2024-03-04T19:00:00",
            "endAt": "2024-03-04T23:00:00",
            "status": "SCHEDULED",
        })

        self.assertEqual(shift.shift_type, ShiftType.NIGHT)
        self.assertEqual(shift.status, ShiftStatus.SCHEDULED)
        self.assertEqual(shift.raw_status, "SCHEDULED")
        self.assertFalse(shift.interactive)
        self.assertEqual(shift.date_key, "2024-03-04")
        self.assertEqual(shift.time_range_label, "19:00–23:00")

    def test_raw_status_is_preserved_as_received(self):
        shift = normalize(make_record(status="Finished"))

        self.assertEqual(shift.raw_status, "Finished")
        self.assertEqual(shift.status, ShiftStatus.COMPLETED)

    def test_missing_id_gets_stable_fallback(self):
        record = make_record(record_id=None, guardId="g-1")

        self.assertEqual(normalize(record).id, normalize(record).id)
        self.assertIn("g-1", normalize(record).id)

    def test_view_model_is_immutable(self):
        shift = normalize(make_record())

        with self.assertRaises(FrozenInstanceError):
            shift.status = ShiftStatus.MISSED

    @override_settings(REGISTRY={"PLACEHOLDER": "n/a", "DATE_LABEL_FORMAT": "%Y/%m/%d"})
    def test_placeholder_and_formats_come_from_settings(self):
        self.assertEqual(normalize({}).branch_name, "n/a")
        self.assertEqual(normalize(make_record()).date_label, "2024/03/04")
        # Unset keys keep their defaults
        self.assertEqual(normalize({}).guard_name, "—")

    def test_normalize_all(self):
        self.assertEqual(len(normalize_all([make_record("1"), make_record("2")])), 2)
        self.assertEqual(normalize_all(None), ())
        self.assertEqual(normalize_all({"items": []}), ())


# =============================================================================
# BUCKET TESTS
# =============================================================================


class WeekDatesTests(SimpleTestCase):
    """Tests for week_dates and iso_date."""

    def test_every_anchor_yields_its_monday_start_week(self):
        for day_number in range(1, 32):
            anchor = date(2024, 3, day_number)
            with self.subTest(anchor=anchor):
                dates = week_dates(anchor)

                self.assertEqual(len(dates), 7)
                self.assertEqual(dates[0].weekday(), 0)
                self.assertIn(anchor, dates)
                for earlier, later in zip(dates, dates[1:]):
                    self.assertEqual((later - earlier).days, 1)

    def test_sunday_belongs_to_preceding_monday(self):
        self.assertEqual(week_dates(date(2024, 3, 10))[0], date(2024, 3, 4))

    def test_monday_anchor_starts_its_own_week(self):
        self.assertEqual(week_dates(date(2024, 3, 4))[0], date(2024, 3, 4))

    def test_week_across_year_boundary(self):
        dates = week_dates(date(2025, 1, 1))

        self.assertEqual(dates[0], date(2024, 12, 30))
        self.assertEqual(dates[-1], date(2025, 1, 5))

    def test_datetime_anchor_drops_time_of_day(self):
        self.assertEqual(week_dates(datetime(2024, 3, 6, 23, 59))[0], date(2024, 3, 4))

    def test_iso_date(self):
        self.assertEqual(iso_date(date(2024, 3, 5)), "2024-03-05")
        self.assertEqual(iso_date(datetime(2024, 3, 5, 23, 59)), "2024-03-05")

    def test_iso_date_uses_local_calendar_date(self):
        with timezone.override(ZoneInfo("Asia/Almaty")):
            aware = datetime(2024, 3, 5, 22, 0, tzinfo=ZoneInfo("UTC"))
            self.assertEqual(iso_date(aware), "2024-03-06")

    def test_month_dates(self):
        dates = month_dates(date(2024, 2, 17))

        self.assertEqual(len(dates), 29)
        self.assertEqual(dates[0], date(2024, 2, 1))
        self.assertEqual(dates[-1], date(2024, 2, 29))


class GroupByDateTests(SimpleTestCase):
    """Tests for group_by_date and calendar_buckets."""

    def test_records_sharing_a_date_land_in_one_bucket_in_order(self):
        first = normalize(make_record("a", start_at="2024-03-05T20:00:00"))
        second = normalize(make_record("b", start_at="2024-03-05T08:00:00"))

        buckets = group_by_date([first, second])

        self.assertEqual(list(buckets), ["2024-03-05"])
        self.assertEqual([s.id for s in buckets["2024-03-05"]], ["a", "b"])

    def test_grouping_is_a_partition(self):
        shifts = normalize_all([
            make_record("1", start_at="2024-03-04T08:00:00"),
            make_record("2", start_at="2024-03-05T08:00:00"),
            make_record("3", start_at="2024-03-04T21:00:00"),
            make_record("4", start_at=None),
            make_record("5", start_at="garbage"),
        ])

        buckets = group_by_date(shifts)
        grouped = [shift for bucket in buckets.values() for shift in bucket]

        self.assertEqual(len(grouped), len(shifts))
        self.assertCountEqual([s.id for s in grouped], [s.id for s in shifts])

    def test_missing_date_key_falls_back_to_date_label(self):
        shift = normalize(make_record(start_at=None))

        self.assertEqual(group_by_date([shift]), {"—": [shift]})

    def test_empty_input(self):
        self.assertEqual(group_by_date([]), {})

    def test_calendar_buckets_cover_every_date(self):
        shift = normalize(make_record(start_at="2024-03-06T08:00:00"))
        stray = normalize(make_record("x", start_at="2024-03-20T08:00:00"))

        buckets = calendar_buckets([shift, stray], week_dates(date(2024, 3, 6)))

        self.assertEqual(list(buckets)[:7], [iso_date(d) for d in week_dates(date(2024, 3, 6))])
        self.assertEqual(buckets["2024-03-06"], [shift])
        self.assertEqual(buckets["2024-03-04"], [])
        self.assertEqual(buckets["2024-03-20"], [stray])

    @skipIf(sys.version_info < (3, 11), "compact ISO timestamps need Python 3.11")
    def test_compact_timestamp_lands_in_its_week_bucket(self):
        shift = normalize(make_record(start_at="20240305T080000", end_at="20240305T200000"))

        buckets = calendar_buckets([shift], week_dates(date(2024, 3, 6)))

        self.assertEqual(shift.date_key, "2024-03-05")
        self.assertEqual(shift.date_label, "05.03.2024")
        self.assertEqual(buckets["2024-03-05"], [shift])
        self.assertEqual(len(buckets), 7)

    def test_shifts_on(self):
        shift = normalize(make_record(start_at="2024-03-06T08:00:00"))
        buckets = group_by_date([shift])

        self.assertEqual(shifts_on(buckets, date(2024, 3, 6)), [shift])
        self.assertEqual(shifts_on(buckets, date(2024, 3, 7)), [])


# =============================================================================
# COUNTER TESTS
# =============================================================================


class DayCountersTests(SimpleTestCase):
    """Tests for DayCounters."""

    def setUp(self):
        self.shifts = normalize_all([
            make_record("1", start_at="2024-03-04T08:00:00", status="COMPLETED"),
            make_record("2", start_at="2024-03-04T20:00:00"),
            make_record("3", start_at="2024-03-04T09:00:00", kind="NIGHT", status="FINISHED"),
        ])

    def test_derive_counters(self):
        self.assertEqual(
            derive_counters(self.shifts),
            DayCounters(total_today=3, day_shifts=1, night_shifts=2, completed=2),
        )

    def test_payload_counters_are_used_verbatim(self):
        payload = {"totalToday": 10, "dayShifts": 6, "nightShifts": 4, "completed": 1}

        self.assertEqual(
            DayCounters.from_payload(payload, self.shifts),
            DayCounters(total_today=10, day_shifts=6, night_shifts=4, completed=1),
        )

    def test_incomplete_payload_falls_back_to_derived(self):
        for payload in [None, {}, {"totalToday": 10}, {"totalToday": 1, "dayShifts": 1, "nightShifts": True, "completed": 0}, []]:
            with self.subTest(payload=payload):
                self.assertEqual(DayCounters.from_payload(payload, self.shifts), derive_counters(self.shifts))

    def test_empty_day(self):
        self.assertEqual(derive_counters([]), DayCounters())


# =============================================================================
# FILTER TESTS
# =============================================================================


class ScheduleFiltersTests(SimpleTestCase):
    """Tests for ScheduleFilters."""

    def test_all_branch_sentinel_means_unset(self):
        for branch in ["all", " ALL ", "", None]:
            with self.subTest(branch=branch):
                self.assertIsNone(make_filters(branch_id=branch).branch_id)

    def test_day_and_week_params(self):
        filters = make_filters(branch_id="b-1")

        self.assertEqual(filters.to_params(ViewScope.DAY), {"date": "2024-03-06", "branchId": "b-1"})
        self.assertEqual(filters.to_params(ViewScope.WEEK), {"date": "2024-03-06", "branchId": "b-1"})

    def test_month_params(self):
        filters = make_filters(agency_id="a-1")

        self.assertEqual(filters.to_params(ViewScope.MONTH), {"year": 2024, "month": 3, "agencyId": "a-1"})

    def test_agency_scoped(self):
        self.assertFalse(make_filters().agency_scoped)
        self.assertTrue(make_filters(agency_id="a-1").agency_scoped)
        self.assertTrue(make_filters(scope=AgencyScope.AGENCY).agency_scoped)
        self.assertFalse(make_filters(scope=AgencyScope.GLOBAL).agency_scoped)


# =============================================================================
# CLIENT TESTS
# =============================================================================


class CredentialTests(SimpleTestCase):
    """Tests for Credential."""

    def test_header(self):
        self.assertEqual(Credential("abc").header, "Bearer abc")
        self.assertEqual(Credential("abc", token_type="Token").header, "Token abc")

    def test_from_payload(self):
        credential = Credential.from_payload({"accessToken": "abc", "tokenType": "Bearer"})

        self.assertEqual(credential, Credential("abc", "Bearer"))
        self.assertEqual(Credential.from_payload({"accessToken": "abc"}).token_type, "Bearer")

    def test_from_payload_without_token(self):
        for payload in [None, {}, {"accessToken": ""}, {"accessToken": 5}, "abc"]:
            with self.subTest(payload=payload):
                self.assertIsNone(Credential.from_payload(payload))

    def test_blank_token_is_not_valid(self):
        self.assertFalse(Credential("  ").is_valid)
        self.assertTrue(Credential("abc").is_valid)


class RegistryClientTests(SimpleTestCase):
    """Tests for RegistryClient."""

    def test_fetch_page_sends_credential_and_params(self):
        client = make_client(make_response({"items": [{"id": "1"}], "page": 0, "size": 50, "total": 1}))

        page = client.fetch_page(ViewScope.WEEK, make_filters(branch_id="b-1"))

        self.assertEqual(page.items, [{"id": "1"}])
        self.assertEqual(page.total, 1)
        args, kwargs = client.session.get.call_args
        self.assertEqual(args[0], "http://registry.test/api/v1/shifts/registry/week")
        self.assertEqual(
            kwargs["params"],
            {"date": "2024-03-06", "branchId": "b-1", "page": 0, "size": 50},
        )
        self.assertEqual(kwargs["headers"]["Authorization"], "Bearer secret-token")

    def test_agency_scope_uses_agency_endpoint(self):
        client = make_client(make_response({"items": [], "total": 0}))

        client.fetch_page(ViewScope.DAY, make_filters(agency_id="a-1", scope=AgencyScope.AGENCY))

        args, kwargs = client.session.get.call_args
        self.assertEqual(args[0], "http://registry.test/api/v1/shifts/registry/agency/day")
        self.assertEqual(kwargs["params"]["agencyId"], "a-1")

    def test_month_uses_year_month_and_larger_page(self):
        client = make_client(make_response({"items": [], "total": 0}))

        client.fetch_page(ViewScope.MONTH, make_filters())

        _, kwargs = client.session.get.call_args
        self.assertEqual(kwargs["params"], {"year": 2024, "month": 3, "page": 0, "size": 100})

    def test_error_message_from_json_body(self):
        client = make_client(make_response({"message": "Branch not found"}, status_code=404))

        with self.assertRaises(RegistryError) as ctx:
            client.fetch_page(ViewScope.DAY, make_filters())

        self.assertEqual(ctx.exception.message, "Branch not found")
        self.assertEqual(ctx.exception.status_code, 404)

    def test_unparsable_error_body_uses_scope_fallback(self):
        client = make_client(make_response(status_code=500, json_error=True))

        with self.assertRaises(RegistryError) as ctx:
            client.fetch_page(ViewScope.DAY, make_filters())

        self.assertEqual(ctx.exception.message, "Failed to load day shift registry")

    def test_error_body_without_message_uses_fallback(self):
        client = make_client(make_response({"error": "boom"}, status_code=500))

        with self.assertRaises(RegistryError) as ctx:
            client.fetch_page(ViewScope.WEEK, make_filters())

        self.assertEqual(ctx.exception.message, "Failed to load week shift registry")

    def test_unauthorized_response(self):
        client = make_client(make_response({"message": "Token expired"}, status_code=401))

        with self.assertRaises(RegistryUnauthenticated) as ctx:
            client.fetch_page(ViewScope.MONTH, make_filters())

        self.assertEqual(ctx.exception.message, "Token expired")

    def test_network_error_uses_fallback(self):
        client = make_client(requests.ConnectionError("connection refused"))

        with self.assertRaises(RegistryError) as ctx:
            client.fetch_page(ViewScope.MONTH, make_filters())

        self.assertEqual(ctx.exception.message, "Failed to load month shift registry")

    def test_missing_credential_makes_no_request(self):
        session = Mock()
        client = RegistryClient(None, base_url="http://registry.test", session=session)

        with self.assertRaises(RegistryUnauthenticated):
            client.fetch_page(ViewScope.DAY, make_filters())

        session.get.assert_not_called()

    def test_fetch_all_walks_pages_until_total(self):
        client = make_client(
            make_response({"items": [{"id": "1"}, {"id": "2"}], "page": 0, "size": 2, "total": 3}),
            make_response({"items": [{"id": "3"}], "page": 1, "size": 2, "total": 3}),
        )

        page = client.fetch_all(ViewScope.WEEK, make_filters(), size=2)

        self.assertEqual([item["id"] for item in page.items], ["1", "2", "3"])
        self.assertEqual(page.total, 3)
        pages_requested = [c.kwargs["params"]["page"] for c in client.session.get.call_args_list]
        self.assertEqual(pages_requested, [0, 1])

    def test_fetch_all_stops_on_empty_page(self):
        client = make_client(
            make_response({"items": [{"id": "1"}], "total": 5}),
            make_response({"items": [], "total": 5}),
        )

        page = client.fetch_all(ViewScope.DAY, make_filters(), size=1)

        self.assertEqual(len(page.items), 1)
        self.assertEqual(client.session.get.call_count, 2)

    @override_settings(REGISTRY={"MAX_PAGES": 2})
    def test_fetch_all_respects_page_limit(self):
        client = make_client(
            make_response({"items": [{"id": "1"}], "total": 100}),
            make_response({"items": [{"id": "2"}], "total": 100}),
            make_response({"items": [{"id": "3"}], "total": 100}),
        )

        page = client.fetch_all(ViewScope.DAY, make_filters(), size=1)

        self.assertEqual(len(page.items), 2)
        self.assertEqual(client.session.get.call_count, 2)

    @override_settings(REGISTRY={"MAX_PAGES": 0})
    def test_fetch_all_reads_at_least_one_page(self):
        client = make_client(make_response({"items": [{"id": "1"}], "total": 100}))

        page = client.fetch_all(ViewScope.WEEK, make_filters(), size=1)

        self.assertEqual(page.items, [{"id": "1"}])
        self.assertEqual(client.session.get.call_count, 1)

    def test_close_closes_own_session(self):
        with patch("apps.registry.client.requests.Session") as session_class:
            client = RegistryClient(Credential("abc"), base_url="http://registry.test")
            client.close()

        session_class.return_value.close.assert_called_once_with()

    def test_close_leaves_injected_session_open(self):
        client = make_client()

        client.close()

        client.session.close.assert_not_called()

    def test_malformed_page_payload(self):
        self.assertEqual(RegistryPage.from_payload("oops"), RegistryPage())
        self.assertEqual(RegistryPage.from_payload({"items": "x", "total": "7"}).total, 0)
        self.assertEqual(RegistryPage.from_payload([{"id": "1"}]).total, 1)

    def test_fetch_counters(self):
        counters = {"totalToday": 3, "dayShifts": 2, "nightShifts": 1, "completed": 0}
        client = make_client(make_response(counters))

        self.assertEqual(client.fetch_counters(make_filters(branch_id="b-1")), counters)

        args, kwargs = client.session.get.call_args
        self.assertEqual(args[0], "http://registry.test/api/v1/shifts/registry/day/counters")
        self.assertEqual(kwargs["params"], {"date": "2024-03-06", "branchId": "b-1"})

    def test_counters_failure_message(self):
        client = make_client(make_response(status_code=503, json_error=True))

        with self.assertRaises(RegistryError) as ctx:
            client.fetch_counters(make_filters())

        self.assertEqual(ctx.exception.message, COUNTERS_FALLBACK_MESSAGE)

    async def test_async_shifts_runs_blocking_fetch(self):
        client = make_client(make_response({"items": [{"id": "1"}], "total": 1}))

        page = await client.shifts(ViewScope.WEEK, make_filters())

        self.assertEqual(page.items, [{"id": "1"}])


# =============================================================================
# STATE MACHINE TESTS
# =============================================================================


class TransitionTests(SimpleTestCase):
    """Tests for the pure scope state transitions."""

    def test_request_moves_idle_to_loading(self):
        filters = make_filters()
        state = transition(ScopeState(), Requested(filters))

        self.assertEqual(state.status, ScopeStatus.LOADING)
        self.assertEqual(state.generation, 1)
        self.assertEqual(state.filters, filters)

    def test_request_clears_error_and_keeps_data(self):
        snapshot = ScopeSnapshot(total=4)
        state = ScopeState(status=ScopeStatus.READY, data=snapshot, generation=3)
        state = transition(state, Failed(3, "boom"))
        self.assertEqual(state.data, EMPTY_SNAPSHOT)

        state = transition(ScopeState(status=ScopeStatus.ERROR, data=snapshot, error="boom", generation=3), Requested(make_filters()))

        self.assertIsNone(state.error)
        self.assertEqual(state.data, snapshot)
        self.assertTrue(state.is_loading)

    def test_success_for_current_generation(self):
        snapshot = ScopeSnapshot(total=2)
        state = transition(transition(ScopeState(), Requested(make_filters())), Succeeded(1, snapshot))

        self.assertEqual(state.status, ScopeStatus.READY)
        self.assertEqual(state.data, snapshot)

    def test_failure_resets_data(self):
        state = ScopeState(status=ScopeStatus.LOADING, data=ScopeSnapshot(total=9), generation=1)
        state = transition(state, Failed(1, "Failed to load day shift registry"))

        self.assertEqual(state.status, ScopeStatus.ERROR)
        self.assertEqual(state.data, EMPTY_SNAPSHOT)
        self.assertEqual(state.error, "Failed to load day shift registry")

    def test_stale_events_leave_state_untouched(self):
        state = ScopeState(status=ScopeStatus.LOADING, generation=2)

        self.assertIs(transition(state, Succeeded(1, ScopeSnapshot(total=1))), state)
        self.assertIs(transition(state, Failed(1, "old failure")), state)

    def test_rejected_credential_marks_state_unauthenticated(self):
        state = ScopeState(status=ScopeStatus.LOADING, generation=1)
        state = transition(state, Failed(1, "Token expired", unauthenticated=True))

        self.assertEqual(state.status, ScopeStatus.ERROR)
        self.assertTrue(state.unauthenticated)

        state = transition(state, Requested(make_filters()))
        self.assertFalse(state.unauthenticated)

    def test_unknown_event(self):
        with self.assertRaises(TypeError):
            transition(ScopeState(), "refresh")


# =============================================================================
# CONTROLLER TESTS
# =============================================================================


class RegistryControllerTests(SimpleTestCase):
    """Tests for RegistryController."""

    def setUp(self):
        self.credential = Credential(access_token="secret-token")
        self.source = FakeRegistrySource()
        self.controller = RegistryController(self.credential, source=self.source)

    async def test_day_scope_joins_shifts_and_counters(self):
        self.source.add_page(ViewScope.DAY, [
            make_record("1", start_at="2024-03-06T08:00:00", status="COMPLETED"),
            make_record("2", start_at="2024-03-06T20:00:00"),
        ])
        self.source.add_counters({"totalToday": 7, "dayShifts": 4, "nightShifts": 3, "completed": 2})

        state = await self.controller.load_day(make_filters())

        self.assertEqual(state.status, ScopeStatus.READY)
        self.assertEqual([s.id for s in state.data.shifts], ["1", "2"])
        self.assertEqual(state.data.counters, DayCounters(7, 4, 3, 2))
        self.assertEqual(list(state.data.buckets), ["2024-03-06"])
        self.assertCountEqual(
            self.source.calls,
            [("shifts", ViewScope.DAY, None), ("counters", ViewScope.DAY, None)],
        )

    async def test_day_counters_derived_when_backend_has_none(self):
        self.source.add_page(ViewScope.DAY, [
            make_record("1", start_at="2024-03-06T08:00:00", status="COMPLETED"),
            make_record("2", start_at="2024-03-06T20:00:00"),
        ])
        self.source.add_counters(None)

        state = await self.controller.load_day(make_filters())

        self.assertEqual(state.data.counters, DayCounters(2, 1, 1, 1))

    async def test_day_scope_fails_when_counters_fail(self):
        self.source.add_page(ViewScope.DAY, [make_record("1")])
        self.source.add_counters(RegistryError("Failed to load shift counters"))

        state = await self.controller.load_day(make_filters())

        self.assertEqual(state.status, ScopeStatus.ERROR)
        self.assertEqual(state.error, "Failed to load shift counters")
        self.assertEqual(state.data.shifts, ())

    async def test_week_scope_buckets_every_day(self):
        self.source.add_page(ViewScope.WEEK, [
            make_record("1", start_at="2024-03-05T08:00:00"),
            make_record("2", start_at="2024-03-05T21:00:00"),
            make_record("3", start_at="2024-03-09T08:00:00"),
        ])

        state = await self.controller.load_week(make_filters())

        buckets = state.data.buckets
        self.assertEqual(list(buckets), [iso_date(d) for d in week_dates(date(2024, 3, 6))])
        self.assertEqual([s.id for s in buckets["2024-03-05"]], ["1", "2"])
        self.assertEqual(buckets["2024-03-04"], ())
        self.assertIsNone(state.data.counters)

    async def test_month_scope_buckets_every_day_of_month(self):
        self.source.add_page(ViewScope.MONTH, [make_record("1", start_at="2024-03-31T08:00:00")], total=1)

        state = await self.controller.load_month(make_filters())

        self.assertEqual(len(state.data.buckets), 31)
        self.assertEqual(len(state.data.buckets["2024-03-31"]), 1)
        self.assertEqual(state.data.total, 1)

    async def test_snapshot_buckets_are_read_only(self):
        self.source.add_page(ViewScope.WEEK, [make_record("1", start_at="2024-03-05T08:00:00")])

        state = await self.controller.load_week(make_filters())

        with self.assertRaises(TypeError):
            state.data.buckets["2024-03-05"] = ()

    async def test_missing_credential_skips_fetch(self):
        controller = RegistryController(None, source=self.source)

        state = await controller.load_week(make_filters())

        self.assertFalse(controller.authenticated)
        self.assertEqual(state.status, ScopeStatus.ERROR)
        self.assertEqual(state.error, UNAUTHENTICATED_MESSAGE)
        self.assertEqual(self.source.calls, [])

    async def test_blank_credential_skips_fetch(self):
        controller = RegistryController(Credential(""), source=self.source)

        state = await controller.load_day(make_filters())

        self.assertEqual(state.error, UNAUTHENTICATED_MESSAGE)
        self.assertEqual(self.source.calls, [])

    async def test_stale_week_response_does_not_overwrite_newer_branch(self):
        slow = asyncio.Event()
        self.source.add_page(ViewScope.WEEK, [make_record("old", start_at="2024-03-05T08:00:00")], branch_id="b-1", gate=slow)
        self.source.add_page(ViewScope.WEEK, [make_record("new", start_at="2024-03-05T08:00:00")], branch_id="b-2")

        first = asyncio.ensure_future(self.controller.load_week(make_filters(branch_id="b-1")))
        await asyncio.sleep(0)
        self.assertEqual(self.controller.state(ViewScope.WEEK).status, ScopeStatus.LOADING)

        await self.controller.load_week(make_filters(branch_id="b-2"))
        slow.set()
        returned = await first

        state = self.controller.state(ViewScope.WEEK)
        self.assertEqual(state.status, ScopeStatus.READY)
        self.assertEqual([s.id for s in state.data.shifts], ["new"])
        self.assertEqual(state.data.filters.branch_id, "b-2")
        self.assertEqual(state.generation, 2)
        self.assertIs(returned, state)

    async def test_stale_failure_does_not_overwrite_newer_result(self):
        slow = asyncio.Event()
        self.source.add_page(ViewScope.MONTH, RegistryError("Failed to load month shift registry"), branch_id="b-1", gate=slow)
        self.source.add_page(ViewScope.MONTH, [make_record("ok", start_at="2024-03-05T08:00:00")], branch_id="b-2")

        first = asyncio.ensure_future(self.controller.load_month(make_filters(branch_id="b-1")))
        await asyncio.sleep(0)
        await self.controller.load_month(make_filters(branch_id="b-2"))
        slow.set()
        await first

        state = self.controller.state(ViewScope.MONTH)
        self.assertEqual(state.status, ScopeStatus.READY)
        self.assertIsNone(state.error)

    async def test_failure_in_one_scope_leaves_others_alone(self):
        self.source.add_page(ViewScope.DAY, [make_record("1", start_at="2024-03-06T08:00:00")])
        self.source.add_counters(None)
        self.source.add_page(ViewScope.WEEK, RegistryError("Failed to load week shift registry"))

        await asyncio.gather(
            self.controller.load_day(make_filters()),
            self.controller.load_week(make_filters()),
        )

        self.assertEqual(self.controller.state(ViewScope.DAY).status, ScopeStatus.READY)
        self.assertEqual(self.controller.state(ViewScope.WEEK).status, ScopeStatus.ERROR)
        self.assertEqual(self.controller.state(ViewScope.MONTH).status, ScopeStatus.IDLE)

    async def test_retry_after_failure_clears_error(self):
        self.source.add_page(ViewScope.WEEK, RegistryError("Failed to load week shift registry"))
        await self.controller.load_week(make_filters())

        self.source.add_page(ViewScope.WEEK, [make_record("1", start_at="2024-03-05T08:00:00")])
        state = await self.controller.refresh(ViewScope.WEEK)

        self.assertEqual(state.status, ScopeStatus.READY)
        self.assertIsNone(state.error)
        self.assertEqual(state.generation, 2)

    async def test_refresh_without_previous_request_is_a_no_op(self):
        state = await self.controller.refresh(ViewScope.DAY)

        self.assertEqual(state.status, ScopeStatus.IDLE)
        self.assertEqual(self.source.calls, [])

    async def test_registry_rejection_makes_controller_unauthenticated(self):
        self.source.add_page(ViewScope.WEEK, RegistryUnauthenticated("Token expired", status_code=401))

        state = await self.controller.load_week(make_filters())

        self.assertEqual(state.status, ScopeStatus.ERROR)
        self.assertEqual(state.error, "Token expired")
        self.assertTrue(state.unauthenticated)
        self.assertFalse(self.controller.authenticated)

        self.source.add_page(ViewScope.MONTH, [make_record("1")])
        state = await self.controller.load_month(make_filters())

        self.assertTrue(state.unauthenticated)
        self.assertEqual(state.error, UNAUTHENTICATED_MESSAGE)
        self.assertEqual(self.source.calls, [("shifts", ViewScope.WEEK, None)])

    async def test_ordinary_failure_is_not_unauthenticated(self):
        self.source.add_page(ViewScope.WEEK, RegistryError("Failed to load week shift registry", status_code=503))

        state = await self.controller.load_week(make_filters())

        self.assertFalse(state.unauthenticated)
        self.assertTrue(self.controller.authenticated)

    async def test_unexpected_error_settles_in_error_state(self):
        self.source.add_page(ViewScope.DAY, KeyError("items"))
        self.source.add_counters(None)

        with self.assertLogs("apps.registry.orchestrator", level="ERROR"):
            state = await self.controller.load_day(make_filters())

        self.assertEqual(state.status, ScopeStatus.ERROR)
        self.assertEqual(state.error, "Failed to load day shift registry")
        self.assertFalse(state.is_loading)

    def test_close_leaves_injected_source_alone(self):
        self.source.close = Mock()

        self.controller.close()

        self.source.close.assert_not_called()

    def test_close_closes_default_client(self):
        controller = RegistryController(self.credential)

        with patch.object(RegistryClient, "close") as close:
            controller.close()

        close.assert_called_once_with()


# =============================================================================
# PYTEST-STYLE TESTS (shared fixtures)
# =============================================================================


def test_full_fixture_record_normalizes(raw_record):
    shift = normalize(raw_record)

    assert shift.guard_name == "Sergeev I.P."
    assert shift.shift_type == ShiftType.DAY
    assert shift.interactive is True


def test_empty_fixture_record_normalizes(empty_record):
    shift = normalize(empty_record)

    assert shift.time_range_label == "—"
    assert shift.date_key == ""


@pytest.mark.parametrize("weekday_offset", range(7))
def test_week_contains_anchor(week_filters, weekday_offset):
    anchor = week_dates(week_filters.date)[weekday_offset]

    assert week_dates(anchor) == week_dates(week_filters.date)


def test_registry_page_factory(registry_page):
    page = RegistryPage.from_payload(registry_page([{"id": "1"}], total=3))

    assert page.total == 3
    assert page.items == [{"id": "1"}]
