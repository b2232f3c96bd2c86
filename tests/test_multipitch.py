"""
Unit tests for mv2h.multipitch
"""

import numpy as np
import pytest

from mv2h import multipitch
from mv2h.music import Note


A_TOL = 1e-12


def _notes(*pitch_onsets):
    return sorted(Note(pitch, onset, onset, onset + 500, 0)
                  for pitch, onset in pitch_onsets)


def test_identical():
    notes = _notes((60, 0), (62, 500))
    assert np.allclose(multipitch.precision_recall_f1(notes, notes),
                       (1.0, 1.0, 1.0), atol=A_TOL)


def test_missing_note():
    reference = _notes((60, 0), (62, 500))
    estimate = _notes((60, 0))
    assert np.allclose(multipitch.precision_recall_f1(reference, estimate),
                       (1.0, 0.5, 2.0 / 3), atol=A_TOL)


@pytest.mark.parametrize(
    "onset, tolerance, expected",
    [(50, 50, 1.0), (51, 50, 0.0), (-50, 50, 1.0), (20, 20, 1.0),
     (21, 20, 0.0)],
)
def test_onset_tolerance(onset, tolerance, expected):
    reference = _notes((60, 1000))
    estimate = _notes((60, 1000 + onset))
    _, _, f_measure = multipitch.precision_recall_f1(
        reference, estimate, onset_tolerance=tolerance)
    assert f_measure == expected


def test_pitch_must_match():
    reference = _notes((60, 0))
    estimate = _notes((61, 0))
    assert multipitch.precision_recall_f1(reference, estimate) == (0.0, 0.0,
                                                                   0.0)


def test_one_to_one():
    # Two estimated notes cannot both match one reference note
    reference = _notes((60, 0))
    estimate = _notes((60, 0), (60, 10))
    assert multipitch.match_notes(reference, estimate) == [(0, 0)]
    assert np.allclose(multipitch.precision_recall_f1(reference, estimate),
                       (0.5, 1.0, 2.0 / 3), atol=A_TOL)


def test_greedy_order_sensitive():
    # The first estimated note takes the first reference note, leaving the
    # second estimated note (only within range of the first reference note)
    # unmatched, although a perfect matching exists.
    reference = _notes((60, 0), (60, 60))
    estimate = [Note(60, 30, 0, 500, 0), Note(60, -20, 10, 500, 0)]
    assert multipitch.match_notes(reference, estimate) == [(0, 0)]
    assert np.allclose(multipitch.precision_recall_f1(reference, estimate),
                       (0.5, 0.5, 0.5), atol=A_TOL)


def test_symmetric():
    reference = _notes((60, 0), (64, 0), (67, 500), (72, 1000))
    estimate = _notes((60, 10), (64, 500), (67, 480), (71, 1000))
    forward = multipitch.precision_recall_f1(reference, estimate)
    backward = multipitch.precision_recall_f1(estimate, reference)
    assert np.allclose(forward, (backward[1], backward[0], backward[2]),
                       atol=A_TOL)
    assert np.allclose(forward[2], 0.5, atol=A_TOL)


def test_empty_warnings():
    notes = _notes((60, 0))
    with pytest.warns(UserWarning, match="Reference notes are empty"):
        assert multipitch.precision_recall_f1([], notes) == (0.0, 0.0, 0.0)
    with pytest.warns(UserWarning, match="Estimate notes are empty"):
        assert multipitch.precision_recall_f1(notes, []) == (0.0, 0.0, 0.0)
