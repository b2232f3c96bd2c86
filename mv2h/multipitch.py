'''
Multi-pitch detection is evaluated at the note level: an estimated note is
correct if it has the same pitch as a reference note and its (performed)
onset time is within ``onset_tolerance`` milliseconds of it. Offsets are
ignored here; note values are evaluated separately by :mod:`mv2h.value`.

Matching is greedy rather than a maximum bipartite matching: estimated
notes are visited in sorted order, and each is matched to the first
unmatched reference note (also in sorted order) that it hits. When several
reference notes of the same pitch lie within the tolerance of one estimated
note, the result can therefore depend on that order.

Metrics
-------
* :func:`mv2h.multipitch.precision_recall_f1`: Precision, recall and
  F-measure of the estimated notes.
'''

import warnings

import numpy as np

from . import util


def validate(reference_notes, estimated_notes):
    """Warn if either note list is empty.

    Parameters
    ----------
    reference_notes : list of mv2h.music.Note
    estimated_notes : list of mv2h.music.Note
    """
    if len(reference_notes) == 0:
        warnings.warn("Reference notes are empty.")
    if len(estimated_notes) == 0:
        warnings.warn("Estimate notes are empty.")


def match_notes(reference_notes, estimated_notes, onset_tolerance=50):
    """Greedily match estimated notes to reference notes.

    Parameters
    ----------
    reference_notes : list of mv2h.music.Note
    estimated_notes : list of mv2h.music.Note
    onset_tolerance : int >= 0
        The maximum difference between a matched pair's onset times, in
        milliseconds. Default is 50.

    Returns
    -------
    matching : list of tuples
        ``matching[k] == (i, j)`` where reference note i matches estimated
        note j, in increasing order of j.
    """
    if len(reference_notes) == 0 or len(estimated_notes) == 0:
        return []

    reference_pitches = np.array([note.pitch for note in reference_notes])
    reference_onsets = np.array([note.onset_time for note in reference_notes])
    available = np.ones(len(reference_notes), dtype=bool)

    matching = []
    for est_i, note in enumerate(estimated_notes):
        hits = (available & (reference_pitches == note.pitch) &
                (np.abs(reference_onsets - note.onset_time)
                 <= onset_tolerance))
        candidates = np.flatnonzero(hits)
        if candidates.size > 0:
            ref_i = int(candidates[0])
            available[ref_i] = False
            matching.append((ref_i, est_i))

    return matching


def precision_recall_f1(reference_notes, estimated_notes, onset_tolerance=50):
    """Compute the precision, recall and F-measure of the estimated notes.

    Examples
    --------
    >>> reference = mv2h.io.load_music('reference.txt')
    >>> estimate = mv2h.io.load_music('estimate.txt')
    >>> precision, recall, f_measure = mv2h.multipitch.precision_recall_f1(
    ...     reference.notes, estimate.notes)

    Parameters
    ----------
    reference_notes : list of mv2h.music.Note
    estimated_notes : list of mv2h.music.Note
    onset_tolerance : int >= 0
        Default is 50.

    Returns
    -------
    precision : float
    recall : float
    f_measure : float
    """
    validate(reference_notes, estimated_notes)

    matching = match_notes(reference_notes, estimated_notes,
                           onset_tolerance=onset_tolerance)
    true_positives = len(matching)
    return util.precision_recall_f1(
        true_positives, len(estimated_notes) - true_positives,
        len(reference_notes) - true_positives)
