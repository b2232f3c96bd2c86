'''
Metrical structure and its evaluation.

A :class:`Meter` is a set of :class:`Tatum` time points (the finest level of
the rhythmic grid) together with a set of :class:`Hierarchy` objects, each
describing the number of beats per bar, sub-beats per beat and tatums per
sub-beat (plus an anacrusis) from its activation time onwards.

From these, the meter is converted into a list of :class:`Grouping`
intervals: one per sub-beat, beat and bar. The groupings of an estimated
meter are matched greedily against those of the reference meter, and the
metrical score is the F-measure of that matching.

Metrics
-------
* :func:`mv2h.meter.precision_recall_f1`: Precision, recall and F-measure of
  the estimated groupings, where an estimated grouping is correct if both
  its start and end times are within ``grouping_epsilon`` of those of an
  unmatched reference grouping.
'''

from dataclasses import dataclass

import numpy as np

from . import util


@dataclass(frozen=True, order=True)
class Tatum:
    """A single point of the metrical grid."""

    time: int

    def __str__(self):
        return 'Tatum {}'.format(self.time)


@dataclass(frozen=True)
class Hierarchy:
    """A metrical hierarchy, active from ``time`` until the next one."""

    beats_per_bar: int
    sub_beats_per_beat: int
    tatums_per_sub_beat: int
    anacrusis_length_tatums: int = 0
    time: int = 0

    def __post_init__(self):
        if min(self.beats_per_bar, self.sub_beats_per_beat,
               self.tatums_per_sub_beat) <= 0:
            raise ValueError('Hierarchy levels must be positive, got '
                             '{},{} {}'.format(self.beats_per_bar,
                                               self.sub_beats_per_beat,
                                               self.tatums_per_sub_beat))

    @property
    def tatums_per_beat(self):
        return self.tatums_per_sub_beat * self.sub_beats_per_beat

    @property
    def tatums_per_bar(self):
        return self.tatums_per_beat * self.beats_per_bar

    @property
    def first_tatum_index(self):
        """Position of the first tatum of this hierarchy within its bar."""
        if self.anacrusis_length_tatums == 0:
            return 0
        return self.tatums_per_bar - self.anacrusis_length_tatums

    def __str__(self):
        return 'Hierarchy {},{} {} a={} {}'.format(
            self.beats_per_bar, self.sub_beats_per_beat,
            self.tatums_per_sub_beat, self.anacrusis_length_tatums, self.time)


@dataclass(frozen=True)
class Grouping:
    """A half-open time interval spanning one sub-beat, beat or bar."""

    start_time: int
    end_time: int

    def matches(self, other, grouping_epsilon=50):
        return (abs(self.start_time - other.start_time) <= grouping_epsilon
                and abs(self.end_time - other.end_time) <= grouping_epsilon)


DEFAULT_HIERARCHY = Hierarchy(4, 2, 4, 0, 0)


class Meter:
    """Tatums and (possibly time-varying) metrical hierarchies.

    A new meter holds :data:`DEFAULT_HIERARCHY` (4 beats per bar, 2 sub-beats
    per beat, 4 tatums per sub-beat) at time 0, which any hierarchy added at
    time 0 replaces.

    Parameters
    ----------
    tatums : iterable of Tatum
    hierarchies : iterable of Hierarchy
    """

    def __init__(self, tatums=(), hierarchies=()):
        self._tatums = set()
        self._hierarchies = {DEFAULT_HIERARCHY.time: DEFAULT_HIERARCHY}
        for tatum in tatums:
            self.add_tatum(tatum)
        for hierarchy in hierarchies:
            self.add_hierarchy(hierarchy)

    def add_tatum(self, tatum):
        self._tatums.add(tatum)

    def add_hierarchy(self, hierarchy):
        """Add a hierarchy, replacing any other at the same time."""
        self._hierarchies[hierarchy.time] = hierarchy

    @property
    def tatums(self):
        return sorted(self._tatums)

    @property
    def hierarchies(self):
        return [self._hierarchies[time] for time in sorted(self._hierarchies)]

    def map_times(self, convert):
        """Return a copy of this meter with every time passed through
        ``convert``.

        The copy holds exactly the converted hierarchies: the default
        hierarchy is only present if this meter still holds it.
        """
        meter = Meter(tatums=[Tatum(convert(tatum.time))
                              for tatum in self.tatums])
        meter._hierarchies = {}
        for hierarchy in self.hierarchies:
            meter.add_hierarchy(Hierarchy(hierarchy.beats_per_bar,
                                          hierarchy.sub_beats_per_beat,
                                          hierarchy.tatums_per_sub_beat,
                                          hierarchy.anacrusis_length_tatums,
                                          convert(hierarchy.time)))
        return meter

    def groupings(self):
        """Convert this meter into sub-beat, beat and bar groupings.

        Tatums are walked in time order. The first hierarchy is active from
        the first tatum, and each later hierarchy becomes active at the
        first tatum at or after its time, restarting the bar (after any
        anacrusis). Each time the running tatum index reaches a sub-beat,
        beat or bar boundary, the open grouping of that level is closed and
        a new one is opened.

        Returns
        -------
        groupings : list of Grouping
        """
        tatums = self.tatums
        hierarchies = self.hierarchies
        groupings = []

        if not tatums or not hierarchies:
            return groupings

        hierarchy_index = 0
        hierarchy = hierarchies[0]
        tatum_index = hierarchy.first_tatum_index

        # Start time of the open sub-beat, beat and bar, or None
        open_starts = [None, None, None]
        for level, length in enumerate(_level_lengths(hierarchy)):
            if tatum_index % length == 0:
                open_starts[level] = tatums[0].time

        for tatum in tatums[1:]:
            tatum_index += 1

            if (hierarchy_index + 1 < len(hierarchies) and
                    hierarchies[hierarchy_index + 1].time <= tatum.time):
                hierarchy_index += 1
                hierarchy = hierarchies[hierarchy_index]
                tatum_index = hierarchy.first_tatum_index

            for level, length in enumerate(_level_lengths(hierarchy)):
                if tatum_index % length == 0:
                    if open_starts[level] is not None:
                        groupings.append(Grouping(open_starts[level],
                                                  tatum.time))
                    open_starts[level] = tatum.time

        return groupings

    def __repr__(self):
        return 'Meter(tatums={!r}, hierarchies={!r})'.format(
            self.tatums, self.hierarchies)


def _level_lengths(hierarchy):
    return (hierarchy.tatums_per_sub_beat, hierarchy.tatums_per_beat,
            hierarchy.tatums_per_bar)


def match_groupings(reference_groupings, estimated_groupings,
                    grouping_epsilon=50):
    """Greedily match estimated groupings to reference groupings.

    Each estimated grouping, in list order, is matched to the first
    unmatched reference grouping whose start and end times are both within
    ``grouping_epsilon`` of its own.

    Parameters
    ----------
    reference_groupings : list of Grouping
    estimated_groupings : list of Grouping
    grouping_epsilon : int >= 0
        Maximum start and end time deviation, in milliseconds.
        (Default value = 50)

    Returns
    -------
    matching : list of tuples
        ``matching[k] == (i, j)`` where reference grouping i matches
        estimated grouping j.
    """
    if not reference_groupings or not estimated_groupings:
        return []

    reference_starts = np.array([g.start_time for g in reference_groupings])
    reference_ends = np.array([g.end_time for g in reference_groupings])
    available = np.ones(len(reference_groupings), dtype=bool)

    matching = []
    for est_i, grouping in enumerate(estimated_groupings):
        hits = (available &
                (np.abs(reference_starts - grouping.start_time)
                 <= grouping_epsilon) &
                (np.abs(reference_ends - grouping.end_time)
                 <= grouping_epsilon))
        candidates = np.flatnonzero(hits)
        if candidates.size > 0:
            ref_i = int(candidates[0])
            available[ref_i] = False
            matching.append((ref_i, est_i))

    return matching


def precision_recall_f1(reference_meter, estimated_meter,
                        grouping_epsilon=50):
    """Compute the precision, recall and F-measure of the estimated metrical
    groupings.

    Examples
    --------
    >>> reference = mv2h.io.load_music('reference.txt')
    >>> estimate = mv2h.io.load_music('estimate.txt')
    >>> precision, recall, f_measure = mv2h.meter.precision_recall_f1(
    ...     reference.meter, estimate.meter)

    Parameters
    ----------
    reference_meter : Meter
    estimated_meter : Meter
    grouping_epsilon : int >= 0
        (Default value = 50)

    Returns
    -------
    precision : float
    recall : float
    f_measure : float
    """
    reference_groupings = reference_meter.groupings()
    estimated_groupings = estimated_meter.groupings()

    matching = match_groupings(reference_groupings, estimated_groupings,
                               grouping_epsilon=grouping_epsilon)

    true_positives = len(matching)
    return util.precision_recall_f1(
        true_positives, len(estimated_groupings) - true_positives,
        len(reference_groupings) - true_positives)
