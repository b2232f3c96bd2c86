'''
Key and chord progressions, and the harmony score.

A progression is a time-ordered list of keys (or chords). Each one lasts
from its start time until the start of the next, and the last one lasts
until the end of the piece (the ground truth's ``last_time``). The estimated
and reference progressions are overlaid, and every overlapping pair of
segments contributes its overlap duration, weighted by how similar the
two are, to the score.

Key similarity follows the MIREX key detection weighting:

=====================================  =====
Relationship                           Score
=====================================  =====
Same tonic and mode                    1.0
Same mode, tonic a perfect fifth away  0.5
Relative major/minor                   0.3
Parallel major/minor                   0.2
Anything else                          0.0
=====================================  =====

Chords are compared by label equality only, so any chord vocabulary can be
used.

Metrics
-------
* :func:`mv2h.harmony.key_score`: Overlap-weighted key similarity.
* :func:`mv2h.harmony.chord_score`: Overlap-weighted chord accuracy.
* :func:`mv2h.harmony.score`: The mean of the two, skipping any which are
  undefined.
'''

from dataclasses import dataclass


@dataclass(frozen=True)
class Key:
    """A key: tonic pitch class (0 = C, ..., 11 = B), mode and start time."""

    tonic: int
    is_major: bool
    time: int = 0

    def __post_init__(self):
        if not 0 <= self.tonic < 12:
            raise ValueError('Key tonic must be a pitch class in [0, 11], '
                             'got {}'.format(self.tonic))

    def __str__(self):
        return 'Key {} {} {}'.format(self.tonic,
                                     'maj' if self.is_major else 'min',
                                     self.time)


@dataclass(frozen=True, order=True)
class Chord:
    """A chord label with its start time. Labels are compared verbatim."""

    time: int
    label: str

    def __str__(self):
        return 'Chord {} {}'.format(self.time, self.label)


class KeyProgression:
    """Time-ordered keys, at most one per start time. When two keys are
    added at the same time, the first is kept."""

    def __init__(self, keys=()):
        self._keys = {}
        for key in keys:
            self.add_key(key)

    def add_key(self, key):
        self._keys.setdefault(key.time, key)

    @property
    def keys(self):
        return [self._keys[time] for time in sorted(self._keys)]

    def __iter__(self):
        return iter(self.keys)

    def __len__(self):
        return len(self._keys)

    def map_times(self, convert):
        return KeyProgression(Key(key.tonic, key.is_major, convert(key.time))
                              for key in self.keys)


class ChordProgression:
    """Time-ordered unique chords."""

    def __init__(self, chords=()):
        self._chords = set()
        for chord in chords:
            self.add_chord(chord)

    def add_chord(self, chord):
        self._chords.add(chord)

    @property
    def chords(self):
        return sorted(self._chords)

    def __iter__(self):
        return iter(self.chords)

    def __len__(self):
        return len(self._chords)

    def map_times(self, convert):
        return ChordProgression(Chord(convert(chord.time), chord.label)
                                for chord in self.chords)


def key_similarity(estimated_key, reference_key):
    """Score an estimated key against a reference key (mode and tonic only;
    start times are ignored).

    Parameters
    ----------
    estimated_key : Key
    reference_key : Key

    Returns
    -------
    score : float
        1.0, 0.5, 0.3, 0.2 or 0.0. See the module documentation.
    """
    same_mode = estimated_key.is_major == reference_key.is_major
    interval = (estimated_key.tonic - reference_key.tonic) % 12

    if same_mode and interval == 0:
        return 1.0
    # Perfect fifth above or below
    if same_mode and interval in (5, 7):
        return 0.5
    # Relative major, e.g. C major for A minor
    if (estimated_key.is_major and not reference_key.is_major and
            interval == 3):
        return 0.3
    # Relative minor, e.g. A minor for C major
    if (not estimated_key.is_major and reference_key.is_major and
            interval == 9):
        return 0.3
    # Parallel major/minor
    if not same_mode and interval == 0:
        return 0.2
    return 0.0


def _segments(events, last_time):
    """Yield (start, end, event) for time-ordered events, each lasting until
    the next one (or ``last_time``), clipped at ``last_time``."""
    for index, event in enumerate(events):
        if index == len(events) - 1:
            end = last_time
        else:
            end = min(last_time, events[index + 1].time)
        yield event.time, end, event


def _overlap_score(reference_events, estimated_events, last_time, similarity):
    """Overlap-weighted similarity of two progressions, normalized by the
    span of the reference progression. None if that span is empty."""
    if not reference_events:
        return None

    total_duration = last_time - reference_events[0].time
    if total_duration <= 0:
        return None

    reference_segments = list(_segments(reference_events, last_time))
    weighted_duration = 0.0
    for est_start, est_end, estimated in _segments(estimated_events,
                                                   last_time):
        for ref_start, ref_end, reference in reference_segments:
            overlap = min(est_end, ref_end) - max(est_start, ref_start)
            if overlap > 0:
                weighted_duration += similarity(estimated, reference) * overlap

    return weighted_duration / total_duration


def key_score(reference_keys, estimated_keys, last_time):
    """Compute the overlap-weighted key score of an estimated key
    progression.

    Parameters
    ----------
    reference_keys : KeyProgression
    estimated_keys : KeyProgression
    last_time : int
        The end time of the reference piece.

    Returns
    -------
    score : float or None
        The score in [0, 1], or None if the reference has no keys (or no
        duration after its first key).
    """
    return _overlap_score(reference_keys.keys, estimated_keys.keys, last_time,
                          key_similarity)


def chord_score(reference_chords, estimated_chords, last_time):
    """Compute the proportion of the reference piece during which the
    estimated chord label equals the reference chord label.

    Parameters
    ----------
    reference_chords : ChordProgression
    estimated_chords : ChordProgression
    last_time : int
        The end time of the reference piece.

    Returns
    -------
    score : float or None
        The score in [0, 1], or None if the reference has no chords (or no
        duration after its first chord).
    """
    return _overlap_score(
        reference_chords.chords, estimated_chords.chords, last_time,
        lambda estimated, reference: float(estimated.label == reference.label))


def score(reference, estimate):
    """Compute the harmony score of an estimated piece: the mean of its key
    and chord scores. If only one of the two is defined it is used alone,
    and if neither is, the harmony score is 0.

    Parameters
    ----------
    reference : mv2h.music.Music
    estimate : mv2h.music.Music

    Returns
    -------
    harmony : float
    """
    last_time = reference.last_time
    keys = key_score(reference.key_progression, estimate.key_progression,
                     last_time)
    chords = chord_score(reference.chord_progression,
                         estimate.chord_progression, last_time)

    if keys is None and chords is None:
        return 0.0
    if keys is None:
        return chords
    if chords is None:
        return keys
    return (keys + chords) / 2
