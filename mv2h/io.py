"""
Functions for loading music and score reports from text files.

Music files hold one entity per line, whitespace delimited, where the first
token names the entity:

* ``Note pitch onset_time value_onset_time value_offset_time voice``
* ``Tatum time``
* ``Hierarchy beats_per_bar,sub_beats_per_beat tatums_per_sub_beat a=anacrusis [time]``
* ``Key tonic maj|min [time]``
* ``Chord time label``

All times are integers, in milliseconds. Lines with any other first token,
and blank lines, are ignored.
"""

import collections
import contextlib
import os

import numpy as np

from .harmony import Chord, ChordProgression, Key, KeyProgression
from .meter import Hierarchy, Meter, Tatum
from .music import Music, Note
from .score import NAMES


@contextlib.contextmanager
def _open(filename, mode='r'):
    """Open ``filename`` if it is a path, or use it directly if it is a
    file handle. Only handles opened here are closed."""
    if isinstance(filename, (str, os.PathLike)):
        with open(filename, mode) as file_handle:
            yield file_handle
    elif hasattr(filename, 'read') or hasattr(filename, 'write'):
        yield filename
    else:
        raise ValueError('filename must be a string or file handle')


def _check_length(tokens, *lengths):
    if len(tokens) not in lengths:
        raise ValueError('Expected {} fields, got {}'.format(
            ' or '.join(str(length) for length in lengths), len(tokens)))


def _parse_note(tokens):
    _check_length(tokens, 6)
    return Note(*(int(token) for token in tokens[1:]))


def _parse_tatum(tokens):
    _check_length(tokens, 2)
    return Tatum(int(tokens[1]))


def _parse_hierarchy(tokens):
    _check_length(tokens, 4, 5)
    beats_per_bar, sub_beats_per_beat = tokens[1].split(',')
    anacrusis = tokens[3]
    if not anacrusis.startswith('a='):
        raise ValueError('Expected anacrusis as a=<tatums>, got '
                         '{}'.format(anacrusis))
    time = int(tokens[4]) if len(tokens) == 5 else 0
    return Hierarchy(int(beats_per_bar), int(sub_beats_per_beat),
                     int(tokens[2]), int(anacrusis[2:]), time)


def _parse_key(tokens):
    _check_length(tokens, 3, 4)
    mode = tokens[2].lower()
    if mode not in ('maj', 'min'):
        raise ValueError('Expected key mode maj or min, got {}'.format(
            tokens[2]))
    time = int(tokens[3]) if len(tokens) == 4 else 0
    return Key(int(tokens[1]), mode == 'maj', time)


def _parse_chord(tokens):
    _check_length(tokens, 3)
    return Chord(int(tokens[1]), tokens[2])


def load_music(filename):
    r"""Load a piece of music from a text file.

    Examples
    --------
    >>> reference = mv2h.io.load_music('reference.txt')
    >>> estimate = mv2h.io.load_music('estimate.txt')

    Parameters
    ----------
    filename : str or file-like
        Path to the file, or an open file handle

    Returns
    -------
    music : mv2h.music.Music

    Raises
    ------
    ValueError
        If a line cannot be parsed. The message gives the file name, the
        row number and the offending line.
    """
    notes = []
    meter = Meter()
    keys = KeyProgression()
    chords = ChordProgression()

    handlers = {
        'Note': (_parse_note, notes.append),
        'Tatum': (_parse_tatum, meter.add_tatum),
        'Hierarchy': (_parse_hierarchy, meter.add_hierarchy),
        'Key': (_parse_key, keys.add_key),
        'Chord': (_parse_chord, chords.add_chord),
    }

    with _open(filename) as input_file:
        for row, line in enumerate(input_file, 1):
            tokens = line.split()
            if not tokens or tokens[0] not in handlers:
                continue

            parse, add = handlers[tokens[0]]
            try:
                entity = parse(tokens)
            except ValueError as error:
                raise ValueError('{} at {}:{:d}:\n\t{}'.format(
                    error, filename, row, line.rstrip('\n'))) from error
            add(entity)

    return Music(notes, meter=meter, key_progression=keys,
                 chord_progression=chords)


def save_scores(scores, filename):
    """Write an MV2H report to a text file.

    Parameters
    ----------
    scores : mv2h.score.MV2H
    filename : str or file-like
        Path to the file, or an open file handle
    """
    with _open(filename, 'w') as output_file:
        output_file.write(str(scores) + '\n')


def load_scores(filename):
    """Load any number of MV2H reports from a text file.

    Reports may be concatenated, and may be interleaved with other output
    (such as the progress lines of ``evaluators/mv2h_eval.py``): lines
    which are not of the form ``Name: value`` for a report name are
    skipped.

    Parameters
    ----------
    filename : str or file-like
        Path to the file, or an open file handle

    Returns
    -------
    scores : collections.OrderedDict
        Maps each report name (see :data:`mv2h.score.NAMES`) to an
        np.ndarray of the scores found for it, in file order.
    """
    values = collections.OrderedDict((name, []) for name in NAMES)

    with _open(filename) as input_file:
        for row, line in enumerate(input_file, 1):
            name, separator, score = line.strip().partition(': ')
            if not separator or name not in values:
                continue
            try:
                values[name].append(float(score))
            except ValueError as error:
                raise ValueError("Couldn't convert value {} found at "
                                 "{}:{:d}:\n\t{}".format(
                                     score, filename, row,
                                     line.rstrip('\n'))) from error

    return collections.OrderedDict(
        (name, np.array(scores)) for name, scores in values.items())
