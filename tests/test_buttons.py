"""Tests for rising-edge button detection."""

import pytest

from automacro.buttons import ButtonEdgeDetector, bits_to_buttons, report_to_bits

from fakes import report


def test_report_bits_are_little_endian():
    assert report_to_bits(bytes([0x01, 0x00])) == 1
    assert report_to_bits(bytes([0x00, 0x01])) == 1 << 8


def test_bits_to_buttons_ascending():
    assert bits_to_buttons(0b1010_0101) == [1, 3, 6, 8]
    assert bits_to_buttons(0) == []


def test_press_reported_once_while_held():
    detector = ButtonEdgeDetector(5)

    assert detector.poll(report()) == []
    assert detector.poll(report(2)) == [2]
    assert detector.poll(report(2)) == []
    assert detector.poll(report(2)) == []


def test_release_is_never_an_edge():
    detector = ButtonEdgeDetector(5)
    detector.poll(report(4, 5))

    assert detector.poll(report(5)) == []
    assert detector.poll(report()) == []


def test_press_after_release_fires_again():
    detector = ButtonEdgeDetector(5)

    assert detector.poll(report(1)) == [1]
    assert detector.poll(report()) == []
    assert detector.poll(report(1)) == [1]


def test_multiple_buttons_in_ascending_order():
    detector = ButtonEdgeDetector(5)
    detector.poll(report(7))

    assert detector.poll(report(32, 7, 9, 1)) == [1, 9, 32]


def test_third_bit_is_button_three():
    detector = ButtonEdgeDetector(5)
    assert detector.poll(bytes([0x03, 0b100, 0, 0, 0])) == [3]


def test_report_id_byte_is_ignored():
    detector = ButtonEdgeDetector(5)
    assert detector.poll(bytes([0xFF, 0, 0, 0, 0])) == []
    assert detector.poll(report(1, report_id=0xFF)) == [1]


def test_no_input_leaves_state_untouched():
    detector = ButtonEdgeDetector(5)
    detector.poll(report(3))
    previous = detector.previous

    assert detector.poll(None) == []
    assert detector.previous == previous
    # Still held, so no new edge
    assert detector.poll(report(3)) == []


def test_state_replaced_on_every_report():
    detector = ButtonEdgeDetector(5)
    detector.poll(report(1, 2))
    detector.poll(report(2))

    assert detector.previous == 0b10


def test_bits_beyond_report_capacity_are_ignored():
    detector = ButtonEdgeDetector(2)
    assert detector.poll(bytes([0x03, 0x01, 0xFF])) == [1]


def test_fresh_detectors_do_not_share_state():
    first = ButtonEdgeDetector(5)
    first.poll(report(1))

    second = ButtonEdgeDetector(5)
    assert second.poll(report(1)) == [1]


def test_report_length_must_leave_room_for_buttons():
    with pytest.raises(ValueError):
        ButtonEdgeDetector(1)
