'''
The MV2H score: the mean of the multi-pitch, voice, meter, value and
harmony sub-scores of a transcription.

When a transcription's timing is trustworthy, :func:`evaluate` scores it
directly. Otherwise, :func:`evaluate_alignment` scores it under every
optimal alignment of its onset groups to the ground truth's (see
:mod:`mv2h.alignment`) and keeps the best.

Conventions
-----------
Both pieces are :class:`mv2h.music.Music` objects, typically loaded with
:func:`mv2h.io.load_music`. The first argument of every function is always
the ground truth.

Metrics
-------
* Multi-pitch: F-measure of the matched notes (:mod:`mv2h.multipitch`)
* Voice: F-measure of the voice connections of matched notes
  (:mod:`mv2h.voice`)
* Meter: F-measure of the sub-beat, beat and bar groupings
  (:mod:`mv2h.meter`)
* Value: mean duration score of the correctly connected notes
  (:mod:`mv2h.value`)
* Harmony: overlap-weighted key and chord accuracy (:mod:`mv2h.harmony`)
* MV2H: the mean of the five
'''

import collections
import concurrent.futures
import functools
import multiprocessing
import warnings
from dataclasses import dataclass, fields

import numpy as np

from . import harmony
from . import meter
from . import multipitch
from . import util
from . import value
from . import voice
from .alignment import AlignmentGraph, align


# Tolerances used when evaluating aligned transcriptions, whose times have
# already been warped onto the ground truth
ALIGNED_ONSET_TOLERANCE = 20
ALIGNED_DURATION_TOLERANCE = 20
ALIGNED_GROUPING_EPSILON = 20

# Report names, in report order
NAMES = ('Multi-pitch', 'Voice', 'Meter', 'Value', 'Harmony', 'MV2H')


@functools.total_ordering
@dataclass(frozen=True)
class MV2H:
    """The five sub-scores of a transcription.

    Results are ordered by their MV2H mean, with ties broken by the
    multi-pitch, voice, meter, value and harmony scores, in that order.
    """

    multi_pitch: float
    voice: float
    meter: float
    value: float
    harmony: float

    @property
    def mv2h(self):
        """The mean of the five sub-scores."""
        return (self.multi_pitch + self.voice + self.meter + self.value +
                self.harmony) / 5

    def _sort_key(self):
        return (self.mv2h,) + tuple(getattr(self, field.name)
                                    for field in fields(self))

    def __lt__(self, other):
        if not isinstance(other, MV2H):
            return NotImplemented
        return self._sort_key() < other._sort_key()

    def to_dict(self):
        """Return the scores as an ordered dict keyed by report name."""
        return collections.OrderedDict(
            zip(NAMES, (self.multi_pitch, self.voice, self.meter, self.value,
                        self.harmony, self.mv2h)))

    def __str__(self):
        return '\n'.join('{}: {!r}'.format(name, float(score))
                         for name, score in self.to_dict().items())


ZERO = MV2H(0.0, 0.0, 0.0, 0.0, 0.0)


def evaluate(reference, estimate, **kwargs):
    """Compute the MV2H sub-scores of a transcription.

    Examples
    --------
    >>> reference = mv2h.io.load_music('reference.txt')
    >>> estimate = mv2h.io.load_music('estimate.txt')
    >>> scores = mv2h.score.evaluate(reference, estimate)
    >>> print(scores.mv2h)

    Parameters
    ----------
    reference : mv2h.music.Music
        The ground truth.
    estimate : mv2h.music.Music
        The transcription.
    kwargs
        Additional keyword arguments which will be passed to the
        appropriate metric functions: ``onset_tolerance`` (default 50),
        ``duration_tolerance`` (default 100) and ``grouping_epsilon``
        (default 50), all in milliseconds.

    Returns
    -------
    scores : MV2H
    """
    multipitch.validate(reference.notes, estimate.notes)

    # Multi-pitch
    matching = util.filter_kwargs(multipitch.match_notes, reference.notes,
                                  estimate.notes, **kwargs)
    true_positives = len(matching)
    _, _, multi_pitch_score = util.precision_recall_f1(
        true_positives, len(estimate.notes) - true_positives,
        len(reference.notes) - true_positives)

    # Voice, on the matched notes only
    pairs = [(reference.notes[ref_i], estimate.notes[est_i])
             for ref_i, est_i in matching]
    (voice_true_positives, voice_false_positives, voice_false_negatives,
     candidates) = voice.connection_counts(pairs)
    _, _, voice_score = util.precision_recall_f1(
        voice_true_positives, voice_false_positives, voice_false_negatives)

    # Meter
    _, _, meter_score = util.filter_kwargs(
        meter.precision_recall_f1, reference.meter, estimate.meter, **kwargs)

    # Value, on the correctly connected notes only
    value_score = util.filter_kwargs(value.score, candidates, **kwargs)

    # Harmony
    harmony_score = harmony.score(reference, estimate)

    return MV2H(multi_pitch_score, voice_score, meter_score, value_score,
                harmony_score)


def _evaluate_range(reference, estimate, graph, start, stop, kwargs,
                    collect=False, callback=None, earlier_found=(),
                    found=None):
    """Score the alignments with indices in ``[start, stop)``.

    Returns the best score, its index, and (if ``collect``) every
    ``(index, score)`` pair evaluated. ``callback``, if given, is called
    with each ``(index, score)`` pair as soon as it is evaluated. Stops at
    the first perfect score, setting the ``found`` event if given, or as
    soon as any of the ``earlier_found`` events is set.
    """
    best = None
    best_index = None
    results = []
    for index in range(start, stop):
        if best is not None and any(event.is_set()
                                    for event in earlier_found):
            break
        candidate = evaluate(reference,
                             align(reference, estimate,
                                   graph.alignment(index)),
                             **kwargs)
        if collect:
            results.append((index, candidate))
        if callback is not None:
            callback(index, candidate)
        if best is None or candidate > best:
            best = candidate
            best_index = index
            if best.mv2h == 1.0:
                if found is not None:
                    found.set()
                break
    return best, best_index, results


def _partition(count, n_parts):
    """Split ``[0, count)`` into at most ``n_parts`` contiguous ranges."""
    n_parts = max(1, min(n_parts, count))
    bounds = [count * part // n_parts for part in range(n_parts + 1)]
    return list(zip(bounds[:-1], bounds[1:]))


def evaluate_alignment(reference, estimate, non_alignment_penalty=1.0,
                       n_jobs=1, callback=None, **kwargs):
    """Compute the MV2H sub-scores of a transcription whose timing is not
    aligned with the ground truth.

    Every optimal alignment of the transcription's onset groups to the
    ground truth's is tried; the transcription is retimed according to it
    and evaluated. The best result is returned, with ties going to the
    alignment with the lowest index.

    Examples
    --------
    >>> best, alignment = mv2h.score.evaluate_alignment(reference, estimate)

    Parameters
    ----------
    reference : mv2h.music.Music
        The ground truth.
    estimate : mv2h.music.Music
        The transcription.
    non_alignment_penalty : float > 0
        The alignment cost of leaving an onset group unaligned.
        Default is 1.0.
    n_jobs : int > 0
        The number of worker processes to evaluate alignments with.
        Each works through a contiguous range of alignment indices, and a
        perfect score in one range stops the workers of all later ranges.
        Default is 1 (evaluate in this process).
    callback : callable or None
        If given, called as ``callback(index, count, scores)`` for each
        evaluated alignment. With ``n_jobs > 1``, calls are made in index
        order once each worker finishes.
    kwargs
        Keyword arguments passed to :func:`evaluate`. The tolerances
        default to :data:`ALIGNED_ONSET_TOLERANCE`,
        :data:`ALIGNED_DURATION_TOLERANCE` and
        :data:`ALIGNED_GROUPING_EPSILON`.

    Returns
    -------
    scores : MV2H
        The best scores. All zeros if no alignment exists.
    alignment : list or None
        The alignment achieving them (see :mod:`mv2h.alignment`), or None
        if no alignment exists.
    """
    kwargs.setdefault('onset_tolerance', ALIGNED_ONSET_TOLERANCE)
    kwargs.setdefault('duration_tolerance', ALIGNED_DURATION_TOLERANCE)
    kwargs.setdefault('grouping_epsilon', ALIGNED_GROUPING_EPSILON)

    graph = AlignmentGraph.from_music(
        reference, estimate, non_alignment_penalty=non_alignment_penalty)
    count = graph.count
    if count == 0:
        warnings.warn("No alignment found between reference and estimate.")
        return ZERO, None

    ranges = _partition(count, n_jobs)

    if len(ranges) == 1:
        report = None
        if callback is not None:
            def report(index, candidate):
                callback(index, count, candidate)
        outcomes = [_evaluate_range(reference, estimate, graph, 0, count,
                                    kwargs, callback=report)]
    else:
        outcomes = []
        with multiprocessing.Manager() as manager, \
                concurrent.futures.ProcessPoolExecutor(
                    max_workers=len(ranges)) as executor:
            # found[k] is set once range k reaches a perfect score, which
            # stops every later range
            found = [manager.Event() for _ in ranges]
            futures = [executor.submit(_evaluate_range, reference, estimate,
                                       graph, start, stop, kwargs,
                                       collect=callback is not None,
                                       earlier_found=found[:part],
                                       found=found[part])
                       for part, (start, stop) in enumerate(ranges)]
            for future in futures:
                outcomes.append(future.result())
                # Later ranges can only tie a perfect score
                if outcomes[-1][0].mv2h == 1.0:
                    for pending in futures:
                        pending.cancel()
                    break

        if callback is not None:
            for _, _, results in outcomes:
                for index, candidate in results:
                    callback(index, count, candidate)

    best = None
    best_index = None
    for range_best, range_index, _ in outcomes:
        if best is None or range_best > best:
            best = range_best
            best_index = range_index

    return best, graph.alignment(best_index)


def summarize(scores):
    """Compute the mean and (population) standard deviation of each metric
    over many evaluations.

    Examples
    --------
    >>> scores = mv2h.io.load_scores('results.txt')
    >>> for name, (mean, std) in mv2h.score.summarize(scores).items():
    ...     print(name, mean, std)

    Parameters
    ----------
    scores : dict
        Maps each report name to a sequence of scores, as returned by
        :func:`mv2h.io.load_scores`.

    Returns
    -------
    summary : collections.OrderedDict
        Maps each report name with at least one score to a
        ``(mean, standard deviation)`` tuple.
    """
    summary = collections.OrderedDict()
    for name, values in scores.items():
        values = np.asarray(values, dtype=float)
        if values.size == 0:
            continue
        summary[name] = (float(np.mean(values)), float(np.std(values)))
    return summary
