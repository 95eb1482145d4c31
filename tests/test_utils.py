import pytest

from macla.errors import InvalidReminderTime
from macla.utils import ms_to_local_str, ms_to_utc_iso, parse_iso_to_ms, parse_when_to_ms

EPOCH = 1792337400000  # 2026-10-18T15:30:00Z


@pytest.mark.parametrize("when", [
    EPOCH,
    float(EPOCH),
    str(EPOCH),
    "2026-10-18T15:30:00Z",
    "2026-10-18T15:30:00+00:00",
    "2026-10-18T12:30:00-03:00",
])
def test_parse_when_accepts_epoch_and_iso(when):
    assert parse_when_to_ms(when) == EPOCH


def test_naive_iso_uses_default_timezone():
    assert parse_iso_to_ms("2026-10-18T12:30:00", "America/Argentina/Buenos_Aires") == EPOCH


@pytest.mark.parametrize("when", [
    None, True, "", "   ", "mañana", {"at": 1},
    float("inf"), float("-inf"), float("nan"), "inf", "NaN", "1e400",
])
def test_parse_when_rejects_garbage(when):
    with pytest.raises(InvalidReminderTime) as info:
        parse_when_to_ms(when)
    assert info.value.user_message == "No entendí la fecha del recordatorio."


def test_formatting_helpers():
    assert ms_to_utc_iso(EPOCH) == "2026-10-18T15:30:00Z"
    assert ms_to_local_str(EPOCH, "America/Argentina/Buenos_Aires") == "2026-10-18 12:30"
