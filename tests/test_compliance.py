"""
Single-Duty Legality Tests
==========================

FDP against the table, rest before the duty, standby caps and
discretion, for each duty shape.

Run: python -m pytest tests/test_compliance.py -v
"""

from datetime import date, datetime

import pytest

from models.data_models import Duty, DutyKind, Location, Severity
from core.compliance import DutyLegalityEvaluator, worst_severity
from core.parameters import FTLFramework


def _make_duty(duty_id, report, off, sectors=2, location=Location.HOME, **kwargs):
    return Duty(duty_id=duty_id, kind=kwargs.pop('kind', DutyKind.FDP), report=report, off=off,
                sectors=sectors, location=location, **kwargs)


@pytest.fixture
def evaluator():
    return DutyLegalityEvaluator()


class TestFlightDuty:

    def test_home_example_day(self, evaluator):
        """07:00-19:00, 2 sectors, 12h rest at home: everything ok."""
        previous = _make_duty('D1', datetime(2025, 3, 9, 9), datetime(2025, 3, 9, 19))
        duty = _make_duty('D2', datetime(2025, 3, 10, 7), datetime(2025, 3, 10, 19))

        result = evaluator.evaluate(duty, previous)

        fdp = result.by_key('fdp')
        assert fdp.severity is Severity.OK
        assert '12:00 / 13:15' in fdp.text
        rest = result.by_key('rest')
        assert rest.severity is Severity.OK
        assert '12:00 / min 12:00' in rest.text
        assert result.by_key('sectors').severity is Severity.OK
        assert result.notes == []
        assert worst_severity(result.badges) is Severity.OK

    def test_fdp_over_limit(self, evaluator):
        duty = _make_duty('D', datetime(2025, 3, 10, 7), datetime(2025, 3, 10, 17), sectors=8)
        result = evaluator.evaluate(duty)
        assert result.by_key('fdp').severity is Severity.BAD
        assert 'FDP exceeds limit by 1:00.' in result.notes

    def test_fdp_within_caution_margin(self, evaluator):
        duty = _make_duty('D', datetime(2025, 3, 10, 7), datetime(2025, 3, 10, 20))
        assert evaluator.evaluate(duty).by_key('fdp').severity is Severity.WARN

    def test_fdp_exactly_at_limit_is_warn_not_bad(self, evaluator):
        duty = _make_duty('D', datetime(2025, 3, 10, 7), datetime(2025, 3, 10, 20, 15))
        assert evaluator.evaluate(duty).by_key('fdp').severity is Severity.WARN

    def test_zero_sectors(self, evaluator):
        duty = _make_duty('D', datetime(2025, 3, 10, 7), datetime(2025, 3, 10, 15), sectors=0)
        result = evaluator.evaluate(duty)
        assert result.by_key('sectors').severity is Severity.WARN
        assert '1 sector)' in result.by_key('fdp').text

    def test_no_previous_no_rest_badge(self, evaluator):
        duty = _make_duty('D', datetime(2025, 3, 10, 7), datetime(2025, 3, 10, 15))
        assert evaluator.evaluate(duty).by_key('rest') is None

    def test_rest_shortfall_under_an_hour_warns(self, evaluator):
        previous = _make_duty('D1', datetime(2025, 3, 9, 9), datetime(2025, 3, 9, 19, 30))
        duty = _make_duty('D2', datetime(2025, 3, 10, 7), datetime(2025, 3, 10, 15))
        assert evaluator.evaluate(duty, previous).by_key('rest').severity is Severity.WARN

    def test_rest_shortfall_of_an_hour_is_bad(self, evaluator):
        previous = _make_duty('D1', datetime(2025, 3, 9, 9), datetime(2025, 3, 9, 21))
        duty = _make_duty('D2', datetime(2025, 3, 10, 7), datetime(2025, 3, 10, 15))
        result = evaluator.evaluate(duty, previous)
        assert result.by_key('rest').severity is Severity.BAD
        assert any(note.startswith('Rest short by 2:00') for note in result.notes)

    def test_overlapping_duties_are_bad(self, evaluator):
        previous = _make_duty('D1', datetime(2025, 3, 10, 5), datetime(2025, 3, 10, 9))
        duty = _make_duty('D2', datetime(2025, 3, 10, 8), datetime(2025, 3, 10, 15))
        assert evaluator.evaluate(duty, previous).by_key('rest').severity is Severity.BAD

    def test_previous_without_times(self, evaluator):
        previous = Duty(duty_id='S', kind=DutyKind.SICK, duty_date=date(2025, 3, 9))
        duty = _make_duty('D2', datetime(2025, 3, 10, 7), datetime(2025, 3, 10, 15))
        assert evaluator.evaluate(duty, previous).by_key('rest').severity is Severity.INFO

    def test_previous_standby_end_starts_rest(self, evaluator):
        previous = Duty(duty_id='SB', kind=DutyKind.STANDBY,
                        standby_start=datetime(2025, 3, 9, 8), standby_end=datetime(2025, 3, 9, 19, 30))
        duty = _make_duty('D2', datetime(2025, 3, 10, 7), datetime(2025, 3, 10, 15))
        rest = evaluator.evaluate(duty, previous).by_key('rest')
        assert rest.severity is Severity.WARN
        assert rest.text.startswith('Rest 11:30')


class TestStandby:

    def test_standby_only_at_twelve_hours_warns(self, evaluator):
        duty = Duty(duty_id='SB', kind=DutyKind.STANDBY,
                    standby_start=datetime(2025, 3, 10, 6), standby_end=datetime(2025, 3, 10, 18))
        result = evaluator.evaluate(duty)
        assert result.by_key('standby').severity is Severity.WARN
        assert result.by_key('rest').severity is Severity.INFO
        assert result.by_key('fdp') is None

    def test_standby_only_eleven_hours_ok(self, evaluator):
        duty = Duty(duty_id='SB', kind=DutyKind.STANDBY,
                    standby_start=datetime(2025, 3, 10, 6), standby_end=datetime(2025, 3, 10, 17))
        assert evaluator.evaluate(duty).by_key('standby').severity is Severity.OK

    def test_standby_only_over_cap(self, evaluator):
        duty = Duty(duty_id='SB', kind=DutyKind.STANDBY,
                    standby_start=datetime(2025, 3, 10, 6), standby_end=datetime(2025, 3, 10, 18, 30))
        result = evaluator.evaluate(duty)
        assert result.by_key('standby').severity is Severity.BAD
        assert result.notes

    def test_standby_only_ignores_previous(self, evaluator):
        previous = _make_duty('D1', datetime(2025, 3, 10, 0), datetime(2025, 3, 10, 5))
        duty = Duty(duty_id='SB', kind=DutyKind.STANDBY,
                    standby_start=datetime(2025, 3, 10, 6), standby_end=datetime(2025, 3, 10, 12))
        assert evaluator.evaluate(duty, previous).by_key('rest').severity is Severity.INFO

    def test_called_out_into_fdp(self, evaluator):
        duty = Duty(
            duty_id='SB', kind=DutyKind.STANDBY,
            standby_start=datetime(2025, 3, 10, 4), standby_end=datetime(2025, 3, 10, 16),
            standby_called=True, standby_call=datetime(2025, 3, 10, 6),
            report=datetime(2025, 3, 10, 7), off=datetime(2025, 3, 10, 20), sectors=2,
        )
        result = evaluator.evaluate(duty)
        assert result.by_key('standby').severity is Severity.OK
        assert result.by_key('standby').text.startswith('Standby 2:00')
        combined = result.by_key('standby_fdp')
        assert combined.severity is Severity.OK
        assert combined.text.startswith('Standby + FDP 15:00')
        assert result.by_key('fdp').severity is Severity.WARN

    def test_standby_plus_fdp_over_twenty_hours(self, evaluator):
        duty = Duty(
            duty_id='SB', kind=DutyKind.STANDBY,
            standby_start=datetime(2025, 3, 10, 0), standby_end=datetime(2025, 3, 10, 12),
            standby_called=True, standby_call=datetime(2025, 3, 10, 10),
            report=datetime(2025, 3, 10, 11), off=datetime(2025, 3, 10, 22, 30), sectors=1,
        )
        result = evaluator.evaluate(duty)
        assert result.by_key('standby_fdp').severity is Severity.BAD
        assert result.by_key('fdp').severity is Severity.OK

    def test_standby_plus_fdp_within_caution_margin(self, evaluator):
        duty = Duty(
            duty_id='SB', kind=DutyKind.STANDBY,
            standby_start=datetime(2025, 3, 10, 0), standby_end=datetime(2025, 3, 10, 12),
            standby_called=True, standby_call=datetime(2025, 3, 10, 10),
            report=datetime(2025, 3, 10, 11), off=datetime(2025, 3, 10, 20, 30), sectors=1,
        )
        combined = evaluator.evaluate(duty).by_key('standby_fdp')
        assert combined.severity is Severity.WARN
        assert combined.text.startswith('Standby + FDP 19:30')

    def test_standby_plus_fdp_exactly_at_cap_warns(self, evaluator):
        duty = Duty(
            duty_id='SB', kind=DutyKind.STANDBY,
            standby_start=datetime(2025, 3, 10, 0), standby_end=datetime(2025, 3, 10, 12),
            standby_called=True, standby_call=datetime(2025, 3, 10, 10),
            report=datetime(2025, 3, 10, 11), off=datetime(2025, 3, 10, 21), sectors=1,
        )
        result = evaluator.evaluate(duty)
        assert result.by_key('standby_fdp').severity is Severity.WARN
        assert result.by_key('standby_fdp').text.startswith('Standby + FDP 20:00')
        assert result.notes == []

    def test_uncalled_window_with_fdp_has_no_combined_badge(self, evaluator):
        duty = Duty(
            duty_id='SB', kind=DutyKind.FDP,
            standby_start=datetime(2025, 3, 10, 0), standby_end=datetime(2025, 3, 10, 6),
            report=datetime(2025, 3, 10, 7), off=datetime(2025, 3, 10, 15), sectors=1,
        )
        result = evaluator.evaluate(duty)
        assert result.by_key('standby') is not None
        assert result.by_key('standby_fdp') is None

    def test_called_without_fdp(self, evaluator):
        duty = Duty(duty_id='SB', kind=DutyKind.STANDBY,
                    standby_start=datetime(2025, 3, 10, 6), standby_end=datetime(2025, 3, 10, 18),
                    standby_called=True, standby_call=datetime(2025, 3, 10, 9))
        result = evaluator.evaluate(duty)
        assert result.by_key('standby').text.startswith('Standby 3:00')
        assert 'Called from standby; no FDP logged.' in result.notes


class TestNonCountingAndMalformed:

    def test_flight_watch_is_informational(self, evaluator):
        previous = _make_duty('D1', datetime(2025, 3, 10, 0), datetime(2025, 3, 10, 5))
        duty = _make_duty('FW', datetime(2025, 3, 10, 6), datetime(2025, 3, 10, 20),
                          kind=DutyKind.FLIGHT_WATCH)
        result = evaluator.evaluate(duty, previous)
        assert [b.key for b in result.badges] == ['kind']
        assert result.badges[0].severity is Severity.INFO
        assert '14:00' in result.badges[0].text

    def test_home_reserve_with_window_is_not_capped(self, evaluator):
        duty = Duty(duty_id='HR', kind=DutyKind.HOME_RESERVE,
                    standby_start=datetime(2025, 3, 10, 6), standby_end=datetime(2025, 3, 10, 20))
        result = evaluator.evaluate(duty)
        assert [(b.key, b.severity) for b in result.badges] == [('kind', Severity.INFO)]
        assert result.badges[0].text == 'Home Reserve: 14:00 logged (not counted)'

    def test_flight_watch_with_window_and_times_is_not_capped(self, evaluator):
        duty = Duty(duty_id='FW', kind=DutyKind.FLIGHT_WATCH,
                    standby_start=datetime(2025, 3, 10, 0), standby_end=datetime(2025, 3, 10, 12),
                    standby_called=True, standby_call=datetime(2025, 3, 10, 10),
                    report=datetime(2025, 3, 10, 11), off=datetime(2025, 3, 10, 23), sectors=1)
        result = evaluator.evaluate(duty)
        assert [b.key for b in result.badges] == ['kind']
        assert result.notes == []

    def test_sick_without_times(self, evaluator):
        result = evaluator.evaluate(Duty(duty_id='S', kind=DutyKind.SICK, duty_date=date(2025, 3, 10)))
        assert [b.severity for b in result.badges] == [Severity.INFO]

    def test_off_before_report_is_not_evaluated(self, evaluator):
        duty = _make_duty('D', datetime(2025, 3, 10, 15), datetime(2025, 3, 10, 7))
        result = evaluator.evaluate(duty)
        assert [b.severity for b in result.badges] == [Severity.INFO]
        assert result.by_key('fdp').text.startswith('FDP: —')


class TestDiscretion:

    def test_long_discretion_warns_with_note(self, evaluator):
        duty = _make_duty('D', datetime(2025, 3, 10, 7), datetime(2025, 3, 10, 15),
                          discretion_minutes=45, discretion_reason='ATC delay',
                          discretion_by='Capt. Smith')
        result = evaluator.evaluate(duty)
        assert result.by_key('discretion').severity is Severity.WARN
        assert result.notes == [
            'Discretion used: 0:45. Reason: ATC delay. Authorised by: Capt. Smith.'
        ]

    def test_short_discretion_ok(self, evaluator):
        duty = _make_duty('D', datetime(2025, 3, 10, 7), datetime(2025, 3, 10, 15),
                          discretion_minutes=20)
        assert evaluator.evaluate(duty).by_key('discretion').severity is Severity.OK

    def test_no_discretion_no_badge(self, evaluator):
        duty = _make_duty('D', datetime(2025, 3, 10, 7), datetime(2025, 3, 10, 15))
        assert evaluator.evaluate(duty).by_key('discretion') is None


class TestClockChange:

    @pytest.fixture
    def london(self):
        return DutyLegalityEvaluator(FTLFramework(timezone='Europe/London'))

    def test_fdp_measured_in_elapsed_time(self, london):
        # Clocks go forward at 01:00 on 30 March
        duty = _make_duty('D', datetime(2025, 3, 30, 0, 30), datetime(2025, 3, 30, 10, 30), sectors=1)
        assert london.evaluate(duty).by_key('fdp').text.startswith('FDP 9:00 / 11:00')

    def test_fdp_and_rest_agree_across_clock_change(self, london):
        previous = _make_duty('D1', datetime(2025, 3, 29, 12), datetime(2025, 3, 29, 20), sectors=1)
        duty = _make_duty('D2', datetime(2025, 3, 30, 9), datetime(2025, 3, 30, 17), sectors=1)
        result = london.evaluate(duty, previous)
        assert result.by_key('rest').text.startswith('Rest 12:00')
        assert result.by_key('fdp').text.startswith('FDP 8:00')

    def test_standby_measured_in_elapsed_time(self, london):
        duty = Duty(duty_id='SB', kind=DutyKind.STANDBY,
                    standby_start=datetime(2025, 3, 29, 18), standby_end=datetime(2025, 3, 30, 7))
        badge = london.evaluate(duty).by_key('standby')
        assert badge.text.startswith('Standby 12:00')
        assert badge.severity is Severity.WARN
