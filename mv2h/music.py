'''
Musical data structures shared by all of the MV2H metrics.

A piece of music (:class:`Music`) is made up of a sorted list of
:class:`Note` objects, one :class:`Voice` per voice id, a
:class:`mv2h.meter.Meter`, a :class:`mv2h.harmony.KeyProgression` and a
:class:`mv2h.harmony.ChordProgression`.

Conventions
-----------
All times are integers, in milliseconds. Every note carries two sets of
times: the performed onset time, used for multi-pitch matching, and the
quantized "value" onset and offset times, which define the note's position
in the score and its note value (duration).

Notes in a voice are grouped into :class:`NoteCluster` objects: notes with
identical value onset and value offset times (a chord within a single
voice). Each cluster is connected to the clusters which follow it in the
voice. A cluster is followed by every cluster whose onset is exactly at its
offset or, if there are none, by every cluster at the nearest onset time
after its offset. Clusters which begin before a cluster's offset (overlaps)
are never connected to it.
'''

import collections
import itertools
from dataclasses import dataclass, field

from .harmony import ChordProgression, KeyProgression
from .meter import Meter


@dataclass(frozen=True, order=True)
class Note:
    """A single note.

    Notes are ordered by value onset time, pitch, onset time, voice and
    value offset time, in that order.
    """

    sort_index: tuple = field(init=False, repr=False)
    pitch: int = field(compare=False)
    onset_time: int = field(compare=False)
    value_onset_time: int = field(compare=False)
    value_offset_time: int = field(compare=False)
    voice: int = field(compare=False)

    def __post_init__(self):
        object.__setattr__(self, 'sort_index',
                           (self.value_onset_time, self.pitch,
                            self.onset_time, self.voice,
                            self.value_offset_time))

    @property
    def duration(self):
        """The quantized duration of this note."""
        return self.value_offset_time - self.value_onset_time

    def matches(self, other, onset_tolerance=50):
        """Whether this note has the same pitch as ``other``, with an onset
        time within ``onset_tolerance`` of it."""
        return (self.pitch == other.pitch and
                abs(self.onset_time - other.onset_time) <= onset_tolerance)

    def map_times(self, convert):
        """Return a copy of this note with every time passed through
        ``convert``."""
        return Note(self.pitch, convert(self.onset_time),
                    convert(self.value_onset_time),
                    convert(self.value_offset_time), self.voice)

    def __str__(self):
        return 'Note {} {} {} {} {}'.format(
            self.pitch, self.onset_time, self.value_onset_time,
            self.value_offset_time, self.voice)


@dataclass(frozen=True)
class NoteCluster:
    """The notes of a single voice which share a value onset and offset."""

    onset_time: int
    offset_time: int
    notes: tuple

    @property
    def key(self):
        return self.onset_time, self.offset_time


class Voice:
    """A time-ordered set of unique notes belonging to one musical line.

    The note cluster graph is derived lazily from the notes the first time
    it is needed, and is discarded whenever a note is added.

    Parameters
    ----------
    notes : iterable of Note
        The initial notes of this voice.
    """

    def __init__(self, notes=()):
        self._notes = set()
        self._graph = None
        for note in notes:
            self.add_note(note)

    def add_note(self, note):
        self._notes.add(note)
        self._graph = None

    @property
    def notes(self):
        """Sorted list of the notes in this voice."""
        return sorted(self._notes)

    def __len__(self):
        return len(self._notes)

    def __iter__(self):
        return iter(self.notes)

    @property
    def clusters(self):
        """Sorted list of the :class:`NoteCluster` objects of this voice."""
        return self._get_graph()[0]

    def cluster_of(self, note):
        """Return the :class:`NoteCluster` containing ``note``."""
        return self._get_graph()[1][note.value_onset_time,
                                    note.value_offset_time]

    def next_clusters(self, cluster):
        """Return the list of clusters which directly follow ``cluster``."""
        return self._get_graph()[2][cluster.key]

    def linked_notes(self, cluster):
        """Return all of the notes in the clusters following ``cluster``."""
        return [note for next_cluster in self.next_clusters(cluster)
                for note in next_cluster.notes]

    def _get_graph(self):
        if self._graph is None:
            self._graph = _build_cluster_graph(self.notes)
        return self._graph

    def __repr__(self):
        return 'Voice({!r})'.format(self.notes)


def _build_cluster_graph(notes):
    """Group sorted notes into clusters and connect each cluster to the
    clusters that follow it.

    Returns
    -------
    clusters : list of NoteCluster
        Clusters sorted by (onset, offset)
    by_key : dict
        (onset, offset) -> NoteCluster
    edges : dict
        (onset, offset) -> list of following NoteCluster
    """
    grouped = collections.defaultdict(list)
    for note in notes:
        grouped[note.value_onset_time, note.value_offset_time].append(note)

    clusters = [NoteCluster(onset, offset, tuple(cluster_notes))
                for (onset, offset), cluster_notes in sorted(grouped.items())]
    by_key = {cluster.key: cluster for cluster in clusters}

    edges = {}
    for index, base in enumerate(clusters):
        following = []
        for candidate in clusters[index + 1:]:
            if candidate.onset_time == base.offset_time:
                following.append(candidate)

            elif candidate.onset_time > base.offset_time:
                # Only the nearest later onset counts, and only when nothing
                # starts exactly at the offset
                if (not following or
                        following[0].onset_time == candidate.onset_time):
                    following.append(candidate)
                else:
                    break
        edges[base.key] = following

    return clusters, by_key, edges


class Music:
    """A complete piece of music: notes, voices, meter, keys and chords.

    Music objects should be treated as immutable once created; use
    :meth:`map_times` to derive a retimed copy.

    Parameters
    ----------
    notes : iterable of Note
    meter : mv2h.meter.Meter or None
        An empty :class:`mv2h.meter.Meter` is used if None.
    key_progression : mv2h.harmony.KeyProgression or None
    chord_progression : mv2h.harmony.ChordProgression or None
    """

    def __init__(self, notes=(), meter=None, key_progression=None,
                 chord_progression=None):
        self.notes = sorted(notes)
        self.meter = meter if meter is not None else Meter()
        self.key_progression = (key_progression if key_progression is not None
                                else KeyProgression())
        self.chord_progression = (chord_progression
                                  if chord_progression is not None
                                  else ChordProgression())

        voice_notes = collections.defaultdict(list)
        for note in self.notes:
            voice_notes[note.voice].append(note)
        self.voices = collections.OrderedDict(
            (voice, Voice(voice_notes[voice]))
            for voice in sorted(voice_notes))

        self._onset_groups = None

    @property
    def last_time(self):
        """The latest time of any note offset, tatum, key or chord, or 0 for
        an empty piece."""
        times = itertools.chain(
            (note.value_offset_time for note in self.notes),
            (tatum.time for tatum in self.meter.tatums),
            (key.time for key in self.key_progression),
            (chord.time for chord in self.chord_progression))
        return max(times, default=0)

    @property
    def onset_groups(self):
        """The notes grouped by identical value onset time, in time order.

        Returns
        -------
        groups : list of list of Note
        """
        if self._onset_groups is None:
            self._onset_groups = [
                list(group) for _, group in itertools.groupby(
                    self.notes, key=lambda note: note.value_onset_time)]
        return self._onset_groups

    def map_times(self, convert):
        """Return a new piece with every time value passed through
        ``convert``. This piece is left untouched.

        Parameters
        ----------
        convert : callable
            Maps an integer time to an integer time.

        Returns
        -------
        music : Music
        """
        return Music([note.map_times(convert) for note in self.notes],
                     meter=self.meter.map_times(convert),
                     key_progression=self.key_progression.map_times(convert),
                     chord_progression=self.chord_progression.map_times(
                         convert))

    def __str__(self):
        lines = [str(note) for note in self.notes]
        lines.extend(str(tatum) for tatum in self.meter.tatums)
        lines.extend(str(hierarchy) for hierarchy in self.meter.hierarchies)
        lines.extend(str(key) for key in self.key_progression)
        lines.extend(str(chord) for chord in self.chord_progression)
        return '\n'.join(lines)
