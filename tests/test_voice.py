"""
Unit tests for mv2h.voice
"""

import numpy as np

from mv2h import voice
from mv2h.music import Note


A_TOL = 1e-12


def _note(pitch, onset, offset, voice_id):
    return Note(pitch, onset, onset, offset, voice_id)


def _pairs(reference, estimate):
    return list(zip(reference, estimate))


def test_identical_melody():
    notes = [_note(60, 0, 500, 0), _note(62, 500, 1000, 0),
             _note(64, 1000, 1500, 0)]
    true_positives, false_positives, false_negatives, candidates = \
        voice.connection_counts(_pairs(notes, notes))
    assert (true_positives, false_positives, false_negatives) == (2, 0, 0)
    # Every note is correctly connected, or ends its voice in both
    assert candidates == _pairs(notes, notes)
    assert np.allclose(voice.precision_recall_f1(_pairs(notes, notes)),
                       (1.0, 1.0, 1.0), atol=A_TOL)


def test_single_notes_have_no_connections():
    notes = [_note(60, 0, 500, 0), _note(62, 0, 500, 1)]
    true_positives, false_positives, false_negatives, candidates = \
        voice.connection_counts(_pairs(notes, notes))
    assert (true_positives, false_positives, false_negatives) == (0, 0, 0)
    assert len(candidates) == 2
    assert voice.precision_recall_f1(_pairs(notes, notes)) == (0.0, 0.0,
                                                               0.0)


def test_wrong_voice():
    reference = [_note(60, 0, 500, 0), _note(64, 0, 500, 0),
                 _note(67, 500, 1000, 0), _note(72, 1000, 1500, 0),
                 _note(48, 0, 1000, 1), _note(55, 1000, 1500, 1)]
    # 67 is moved into the lower voice
    estimate = [_note(60, 0, 500, 0), _note(64, 0, 500, 0),
                _note(67, 500, 1000, 1), _note(72, 1000, 1500, 0),
                _note(48, 0, 1000, 1), _note(55, 1000, 1500, 1)]

    true_positives, false_positives, false_negatives, candidates = \
        voice.connection_counts(_pairs(reference, estimate))

    # The two chord notes each count half a wrong link (60 -> 72 instead of
    # 60 -> 67), 67 counts a whole one, and 48 -> 55 is right.
    assert np.allclose((true_positives, false_positives, false_negatives),
                       (1.0, 2.0, 2.0), atol=A_TOL)
    assert sorted(estimated.pitch for _, estimated in candidates) == [48, 55,
                                                                      72]
    assert np.allclose(voice.precision_recall_f1(_pairs(reference, estimate)),
                       (1.0 / 3, 1.0 / 3, 1.0 / 3), atol=A_TOL)


def test_chord_normalization():
    # One chord of three notes followed by one note, all in one voice
    reference = [_note(60, 0, 500, 0), _note(64, 0, 500, 0),
                 _note(67, 0, 500, 0), _note(72, 500, 1000, 0)]
    # The estimate splits the last note into its own voice
    estimate = [_note(60, 0, 500, 0), _note(64, 0, 500, 0),
                _note(67, 0, 500, 0), _note(72, 500, 1000, 1)]

    true_positives, false_positives, false_negatives, _ = \
        voice.connection_counts(_pairs(reference, estimate))

    # Each chord note misses one link, weighted by 1 / (0.5 * 3)
    assert np.allclose((true_positives, false_positives, false_negatives),
                       (0.0, 0.0, 2.0), atol=A_TOL)


def test_partially_correct_links():
    # The reference melody note is followed by a two-note chord, of which
    # the estimate only connects to one
    reference = [_note(60, 0, 500, 0), _note(64, 500, 1000, 0),
                 _note(67, 500, 1000, 0)]
    estimate = [_note(60, 0, 500, 0), _note(64, 500, 1000, 0),
                _note(67, 500, 1000, 1)]

    true_positives, false_positives, false_negatives, candidates = \
        voice.connection_counts(_pairs(reference, estimate))

    # 60 has 1 estimated and 2 reference links: weight 1 / 1.5
    assert np.allclose((true_positives, false_positives, false_negatives),
                       (2.0 / 3, 0.0, 2.0 / 3), atol=A_TOL)
    # A partly correct connection is enough for the value metric
    assert [estimated.pitch for _, estimated in candidates] == [60, 64, 67]


def test_empty():
    assert voice.connection_counts([]) == (0.0, 0.0, 0.0, [])
    assert voice.precision_recall_f1([]) == (0.0, 0.0, 0.0)
