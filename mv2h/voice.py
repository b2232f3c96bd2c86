'''
Voice separation is evaluated on the connections between consecutive notes
of each voice, considering only notes which were matched by the multi-pitch
metric.

Both the reference and the estimated matched notes are split into voices,
and each voice is converted into a graph of note clusters (see
:mod:`mv2h.music`). For every matched estimated note, the notes which its
cluster links to are compared with the notes which the matching reference
note's cluster links to. A link is a true positive when the linked
estimated note is matched to one of the reference note's linked notes.

To stop chords from outweighing single-note melodies, the counts of each
note are divided by the average number of links of the two notes and by
the size of the estimated note's cluster.

Notes whose outgoing connections are (at least partly) correct, or which
end a voice in both pieces, are the ones whose note values are evaluated
by :mod:`mv2h.value`.

Metrics
-------
* :func:`mv2h.voice.precision_recall_f1`: Precision, recall and F-measure of
  the normalized voice connections.
'''

import collections

from . import util
from .music import Voice


def _split_voices(notes):
    voices = collections.defaultdict(list)
    for note in notes:
        voices[note.voice].append(note)
    return {voice: Voice(voice_notes) for voice, voice_notes in voices.items()}


def connection_counts(matching):
    """Compare the voice connections of matched notes.

    Parameters
    ----------
    matching : list of tuples
        ``(reference_note, estimated_note)`` pairs, as found by the
        multi-pitch metric.

    Returns
    -------
    true_positives : float
    false_positives : float
    false_negatives : float
        Normalized connection counts, summed over all matched notes.
    value_candidates : list of tuples
        The ``(reference_note, estimated_note)`` pairs whose note values
        should be evaluated.
    """
    reference_of = {estimated: reference for reference, estimated in matching}
    reference_voices = _split_voices(reference for reference, _ in matching)
    estimated_voices = _split_voices(estimated for _, estimated in matching)

    true_positives = 0.0
    false_positives = 0.0
    false_negatives = 0.0
    value_candidates = []

    for voice_id in sorted(estimated_voices):
        estimated_voice = estimated_voices[voice_id]
        for cluster in estimated_voice.clusters:
            estimated_links = estimated_voice.linked_notes(cluster)

            for estimated_note in cluster.notes:
                reference_note = reference_of[estimated_note]
                reference_voice = reference_voices[reference_note.voice]
                reference_links = reference_voice.linked_notes(
                    reference_voice.cluster_of(reference_note))

                unmatched_links = list(reference_links)
                true = 0
                false = 0
                for linked_note in estimated_links:
                    if reference_of[linked_note] in unmatched_links:
                        unmatched_links.remove(reference_of[linked_note])
                        true += 1
                    else:
                        false += 1
                missed = len(unmatched_links)

                out_degree = (len(estimated_links) + len(reference_links)) / 2
                if out_degree > 0:
                    weight = 1.0 / (out_degree * len(cluster.notes))
                    true_positives += true * weight
                    false_positives += false * weight
                    false_negatives += missed * weight

                if true > 0 or (not estimated_links and not reference_links):
                    value_candidates.append((reference_note, estimated_note))

    return true_positives, false_positives, false_negatives, value_candidates


def precision_recall_f1(matching):
    """Compute the precision, recall and F-measure of the voice connections
    of the matched notes.

    Examples
    --------
    >>> pairs = [(reference.notes[i], estimate.notes[j])
    ...          for i, j in mv2h.multipitch.match_notes(reference.notes,
    ...                                                  estimate.notes)]
    >>> precision, recall, f_measure = mv2h.voice.precision_recall_f1(pairs)

    Parameters
    ----------
    matching : list of tuples
        ``(reference_note, estimated_note)`` pairs.

    Returns
    -------
    precision : float
    recall : float
    f_measure : float
    """
    true_positives, false_positives, false_negatives, _ = \
        connection_counts(matching)
    return util.precision_recall_f1(true_positives, false_positives,
                                    false_negatives)
