"""
Unit tests for mv2h.harmony
"""

import numpy as np
import pytest

from mv2h import harmony
from mv2h.harmony import Chord, ChordProgression, Key, KeyProgression
from mv2h.music import Music, Note


A_TOL = 1e-12


def _music(keys=(), chords=(), end=2000):
    # A single note fixes the piece's last_time
    return Music([Note(60, 0, 0, end, 0)],
                 key_progression=KeyProgression(keys),
                 chord_progression=ChordProgression(chords))


@pytest.mark.parametrize(
    "estimated, reference, expected",
    [
        (Key(0, True), Key(0, True), 1.0),
        (Key(9, False), Key(9, False), 1.0),
        # Fifths above and below
        (Key(7, True), Key(0, True), 0.5),
        (Key(5, True), Key(0, True), 0.5),
        (Key(4, False), Key(9, False), 0.5),
        # Relative major and minor
        (Key(0, True), Key(9, False), 0.3),
        (Key(9, False), Key(0, True), 0.3),
        # Parallel
        (Key(0, False), Key(0, True), 0.2),
        (Key(0, True), Key(0, False), 0.2),
        # Unrelated
        (Key(2, True), Key(0, True), 0.0),
        (Key(3, False), Key(0, True), 0.0),
        (Key(9, True), Key(0, False), 0.0),
    ],
)
def test_key_similarity(estimated, reference, expected):
    assert harmony.key_similarity(estimated, reference) == expected


@pytest.mark.parametrize("tonic", [-1, 12])
def test_key_tonic_range(tonic):
    with pytest.raises(ValueError):
        Key(tonic, True)


def test_key_progression_keeps_first():
    progression = KeyProgression([Key(0, True, 0), Key(7, True, 0),
                                  Key(2, False, 1000)])
    assert progression.keys == [Key(0, True, 0), Key(2, False, 1000)]


def test_chord_progression_unique():
    progression = ChordProgression([Chord(0, "C"), Chord(0, "C"),
                                    Chord(0, "G"), Chord(500, "F")])
    assert progression.chords == [Chord(0, "C"), Chord(0, "G"),
                                  Chord(500, "F")]
    assert len(progression) == 3


def test_key_score_modulation():
    # C major throughout, against C major then A minor at the halfway point
    reference = _music(keys=[Key(0, True, 0)])
    estimate = _music(keys=[Key(0, True, 0), Key(9, False, 1000)])
    expected = (1.0 * 1000 + 0.3 * 1000) / 2000
    assert np.allclose(harmony.key_score(reference.key_progression,
                                         estimate.key_progression, 2000),
                       expected, atol=A_TOL)
    assert np.allclose(harmony.score(reference, estimate), 0.65,
                       atol=A_TOL)


def test_key_score_normalized_from_first_reference_key():
    reference = _music(keys=[Key(0, True, 500)])
    estimate = _music(keys=[Key(0, True, 0)])
    assert np.allclose(harmony.score(reference, estimate), 1.0, atol=A_TOL)


def test_chord_score():
    reference = _music(chords=[Chord(0, "C"), Chord(1000, "G")])
    estimate = _music(chords=[Chord(0, "C"), Chord(500, "G")])
    # Correct on [0, 500) and [1000, 2000)
    assert np.allclose(harmony.chord_score(reference.chord_progression,
                                           estimate.chord_progression, 2000),
                       0.75, atol=A_TOL)


def test_segments_clipped_at_last_time():
    reference = _music(chords=[Chord(0, "C")], end=1000)
    estimate = _music(chords=[Chord(0, "C"), Chord(1500, "G")], end=1000)
    assert np.allclose(harmony.chord_score(reference.chord_progression,
                                           estimate.chord_progression, 1000),
                       1.0, atol=A_TOL)


def test_undefined_scores():
    empty = KeyProgression()
    assert harmony.key_score(empty, KeyProgression([Key(0, True)]),
                             1000) is None
    # No duration after the first reference key
    assert harmony.key_score(KeyProgression([Key(0, True, 1000)]),
                             KeyProgression([Key(0, True, 1000)]),
                             1000) is None
    assert harmony.chord_score(ChordProgression(), ChordProgression(),
                               1000) is None


def test_score_fallbacks():
    keys = [Key(0, True)]
    chords = [Chord(0, "C")]

    # Neither defined
    assert harmony.score(_music(), _music(keys=keys, chords=chords)) == 0.0
    # Only keys
    assert harmony.score(_music(keys=keys),
                         _music(keys=[Key(0, False)])) == 0.2
    # Only chords
    assert harmony.score(_music(chords=chords), _music()) == 0.0
    assert harmony.score(_music(chords=chords),
                         _music(chords=chords)) == 1.0
    # Both
    assert np.allclose(harmony.score(_music(keys=keys, chords=chords),
                                     _music(keys=[Key(7, True)],
                                            chords=chords)),
                       0.75, atol=A_TOL)
