'''
Note values are evaluated on the quantized durations of notes whose voice
connections were correct (see :func:`mv2h.voice.connection_counts`). An
estimated note whose duration is within ``duration_tolerance`` of its
reference note's scores 1; otherwise the score falls linearly with the
relative error, down to 0.

Metrics
-------
* :func:`mv2h.value.score`: Mean note value score over the candidate notes.
'''


def note_score(reference_note, estimated_note, duration_tolerance=100):
    """Score the duration of a single estimated note.

    Parameters
    ----------
    reference_note : mv2h.music.Note
    estimated_note : mv2h.music.Note
    duration_tolerance : int >= 0
        Default is 100 (milliseconds).

    Returns
    -------
    score : float in [0, 1]
    """
    reference_duration = reference_note.duration
    difference = abs(estimated_note.duration - reference_duration)

    if difference <= duration_tolerance:
        return 1.0
    if reference_duration <= 0:
        return 0.0
    return max(0.0, 1.0 - difference / reference_duration)


def score(candidates, duration_tolerance=100):
    """Compute the mean note value score.

    Parameters
    ----------
    candidates : list of tuples
        ``(reference_note, estimated_note)`` pairs to evaluate.
    duration_tolerance : int >= 0
        Default is 100 (milliseconds).

    Returns
    -------
    score : float
        The mean score, or 0 if there are no candidates.
    """
    if not candidates:
        return 0.0

    return sum(note_score(reference, estimated, duration_tolerance)
               for reference, estimated in candidates) / len(candidates)
